# app/services/product_service.py
from decimal import Decimal
from typing import Dict, Any

from slugify import slugify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.product import ProductModel, ProductImageModel
from app.domain.errors import ConflictError, NotFoundError, StorageError
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class ProductService:
    """
    Catalog administration. Slug uniqueness is left to the unique
    constraint on products.slug, a clash comes back as ConflictError.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def get_product_by_slug(self, slug: str) -> Dict[str, Any]:
        product = self.repo.get_by_slug(slug)
        if product is None or not product.is_active:
            raise NotFoundError(f"Product {slug!r} not found")
        return self._to_dict(product)

    def create_product(
        self,
        name: str,
        price: Decimal,
        cost_price: Decimal,
        slug: str | None = None,
    ) -> Dict[str, Any]:
        slug = slugify(slug or name)
        if not slug:
            raise ValueError("Slug cannot be empty")

        product = ProductModel(name=name, slug=slug, price=price, cost_price=cost_price, is_active=True)
        self._save(lambda: self.repo.create_product(product), f"Slug {slug!r} is already taken")

        logger.info(f"Product {product.id} created with slug {slug}")
        return self._to_dict(product)

    def update_slug(self, product_id: int, slug: str) -> Dict[str, Any]:
        product = self._get(product_id)
        new_slug = slugify(slug)
        if not new_slug:
            raise ValueError("Slug cannot be empty")

        def apply():
            product.slug = new_slug
            self.repo.db.flush()

        self._save(apply, f"Slug {new_slug!r} is already taken")
        logger.info(f"Product {product_id} slug changed to {new_slug}")
        return self._to_dict(product)

    def add_image(self, product_id: int, url: str, primary: bool = False) -> Dict[str, Any]:
        product = self._get(product_id)
        images = list(product.images)

        #first image is always primary
        make_primary = primary or not images

        def apply():
            if make_primary:
                for img in images:
                    img.is_primary = False
            product.images.append(
                ProductImageModel(
                    url=url,
                    position=max((img.position for img in images), default=-1) + 1,
                    is_primary=make_primary,
                )
            )
            self.repo.db.flush()

        self._save(apply, "Could not add image")
        return self._to_dict(product)

    def set_primary_image(self, product_id: int, image_id: int) -> Dict[str, Any]:
        product = self._get(product_id)
        image = self.repo.get_image(product_id, image_id)
        if image is None:
            raise NotFoundError(f"Image {image_id} not found for product {product_id}")

        def apply():
            for img in product.images:
                img.is_primary = img.id == image.id
            self.repo.db.flush()

        self._save(apply, "Could not change primary image")
        return self._to_dict(product)

    def _get(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def _save(self, apply, conflict_message: str) -> None:
        try:
            apply()
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            raise ConflictError(conflict_message) from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            raise StorageError("Could not save product") from e

    @staticmethod
    def _to_dict(product: ProductModel) -> Dict[str, Any]:
        # cost_price stays internal
        return {
            "id": product.id,
            "name": product.name,
            "slug": product.slug,
            "price": product.price,
            "is_active": product.is_active,
            "images": [
                {
                    "id": img.id,
                    "url": img.url,
                    "position": img.position,
                    "is_primary": img.is_primary,
                }
                for img in product.images
            ],
        }
