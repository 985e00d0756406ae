"""Expense categories and their providers."""

from typing import Optional

from pydantic import BaseModel

from houseshare.flows.base import BaseFlow
from houseshare.models.audit import AuditEventType
from houseshare.models.forms import CategoryForm
from houseshare.models.household import Category, House, Provider
from houseshare.services.storage import StorageError


class CategoryResult(BaseModel):
    """A saved category. ``warning`` is set when its provider was not saved."""

    category: Category
    provider: Optional[Provider] = None
    warning: Optional[str] = None


class CategoryFlow(BaseFlow):
    """
    Orchestrates category management.

    The category write must succeed; the provider write is a side write
    whose failure only produces a warning.
    """

    async def list_categories(self, house: House) -> list[Category]:
        try:
            return await self._storage.list_categories(house.id)
        except StorageError as e:
            await self._storage_failed("list categories", e, house.id)
            raise

    async def get_provider(self, category: Category) -> Optional[Provider]:
        try:
            return await self._storage.get_provider_for_category(category.id)
        except StorageError as e:
            await self._storage_failed("get provider", e, category.house_id)
            raise

    async def add_category(self, house: House, form: CategoryForm) -> CategoryResult:
        """
        Create a category, and its provider when a label is given.

        Raises:
            FormValidationError: Blank category name
            StorageError: The category insert failed
        """
        await self._require_valid(self._validator.validate_category(form), house.id)

        category = Category(
            house_id=house.id,
            name=form.name,
            type=form.type,
            billing_type=form.billing_type,
            recurrence=form.effective_recurrence,
            is_free=form.is_free,
        )
        try:
            category = await self._storage.create_category(category)
        except StorageError as e:
            await self._storage_failed("create category", e, house.id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_category_changed(
                event_type=AuditEventType.CATEGORY_CREATED,
                category_id=category.id,
                house_id=house.id,
                name=category.name,
            )

        result = CategoryResult(category=category)
        if not form.provider_label:
            return result

        try:
            result.provider = await self._storage.create_provider(Provider(
                house_id=house.id,
                category_id=category.id,
                label=form.provider_label,
            ))
        except StorageError as e:
            await self._provider_failed(category, form.provider_label, e)
            result.warning = (
                f'Note: Category created successfully, but provider "{form.provider_label}" '
                "could not be saved. You can add it later from the category settings."
            )
            return result

        if self._audit_logger:
            await self._audit_logger.log_provider_saved(
                provider_id=result.provider.id,
                house_id=house.id,
                label=result.provider.label,
            )
        return result

    async def edit_category(self, category: Category, form: CategoryForm) -> CategoryResult:
        """
        Update a category and bring its provider in line with the form.

        A provider label updates the existing provider or creates one; a
        blank label deletes the category's providers.
        """
        await self._require_valid(self._validator.validate_category(form), category.house_id)

        updates = {
            "name": form.name,
            "type": form.type,
            "billing_type": form.billing_type,
            "recurrence": form.effective_recurrence,
            "is_free": form.is_free,
        }
        try:
            await self._storage.update_category(category.id, updates)
        except StorageError as e:
            await self._storage_failed("update category", e, category.house_id)
            raise

        updated = category.model_copy(update=updates)
        if self._audit_logger:
            await self._audit_logger.log_category_changed(
                event_type=AuditEventType.CATEGORY_UPDATED,
                category_id=category.id,
                house_id=category.house_id,
                name=updated.name,
            )

        result = CategoryResult(category=updated)
        try:
            result.provider = await self._sync_provider(updated, form.provider_label)
        except StorageError as e:
            await self._provider_failed(updated, form.provider_label, e)
            result.warning = (
                f'Note: Category updated successfully, but provider "{form.provider_label}" '
                "could not be saved."
            )
        return result

    async def _sync_provider(self, category: Category, label: str) -> Optional[Provider]:
        if not label:
            await self._storage.delete_providers_for_category(category.id)
            return None

        existing = await self._storage.get_provider_for_category(category.id)
        if existing:
            await self._storage.update_provider(existing.id, {"label": label})
            provider = existing.model_copy(update={"label": label})
        else:
            provider = await self._storage.create_provider(Provider(
                house_id=category.house_id,
                category_id=category.id,
                label=label,
            ))

        if self._audit_logger:
            await self._audit_logger.log_provider_saved(
                provider_id=provider.id,
                house_id=category.house_id,
                label=label,
            )
        return provider

    async def _provider_failed(self, category: Category, label: str, error: StorageError) -> None:
        if self._audit_logger:
            await self._audit_logger.log_provider_failed(
                category_id=category.id,
                house_id=category.house_id,
                label=label,
                error_message=str(error),
            )

    async def delete_category(self, category: Category) -> None:
        """Delete a category; the backend removes what depends on it."""
        try:
            await self._storage.delete_category(category.id)
        except StorageError as e:
            await self._storage_failed("delete category", e, category.house_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_category_changed(
                event_type=AuditEventType.CATEGORY_DELETED,
                category_id=category.id,
                house_id=category.house_id,
                name=category.name,
            )
