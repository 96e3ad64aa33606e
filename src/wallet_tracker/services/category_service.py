import logging
from typing import List, Optional, Tuple

from wallet_tracker.domain.enums import CategoryType
from wallet_tracker.domain.errors import ValidationError
from wallet_tracker.domain.models import Category
from wallet_tracker.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class CategoryService:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def repository(self):
        return self.uow.repositories.categories

    def create(
        self,
        name: str,
        type: CategoryType,
        parent_id: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        sort_order: int = 0,
    ) -> Category:
        """
        Create a category, optionally nested under a parent.

        Raises:
            ValidationError: If a field is invalid or the parent has another type
            RecordNotFoundError: If the parent does not exist
        """
        category = Category(
            name=name,
            type=type,
            parent_id=parent_id,
            color=color,
            icon=icon,
            sort_order=sort_order,
        )
        category.validate()
        self._check_parent(category)

        self.repository.create(category)
        logger.info("Created category %s (%s)", category.id, category.name)
        return category

    def get(self, category_id: str) -> Category:
        return self.repository.get_by_id(category_id)

    def list(self) -> List[Category]:
        return self.repository.list()

    def list_by_type(self, category_type: CategoryType) -> List[Category]:
        return self.repository.get_by_type(category_type)

    def get_with_children(self, category_id: str) -> Tuple[Category, List[Category]]:
        category = self.repository.get_by_id(category_id)
        return category, self.repository.get_children(category_id)

    def update(
        self,
        category_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        sort_order: Optional[int] = None,
    ) -> Category:
        category = self.repository.get_by_id(category_id)

        if name is not None:
            category.name = name
        if color is not None:
            category.color = color
        if icon is not None:
            category.icon = icon
        if sort_order is not None:
            category.sort_order = sort_order
        category.validate()

        return self.repository.update(category)

    def delete(self, category_id: str) -> None:
        self.repository.delete(category_id)
        logger.info("Deleted category %s", category_id)

    def _check_parent(self, category: Category) -> None:
        if category.parent_id is None:
            return
        parent = self.repository.get_by_id(category.parent_id)
        if parent.type != category.type:
            raise ValidationError(
                f"Sub-category type {category.type.value} does not match parent type {parent.type.value}"
            )
