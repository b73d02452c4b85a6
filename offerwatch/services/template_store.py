"""Import template persistence.

Mapping schemas are validated on create/update (valid JSON, flat object of
known field names to path strings); the import runner only reads templates
and stamps last_run_at.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, select, update

from offerwatch.errors import StoreError
from offerwatch.models import ImportTemplate
from offerwatch.services.field_mapper import validate_mapping_schema
from offerwatch.stores.postgres import DB_ERRORS, get_session


class SqlTemplateStore:
    async def list_active(self) -> list[ImportTemplate]:
        stmt = (
            select(ImportTemplate)
            .where(ImportTemplate.is_active.is_(True))
            .order_by(ImportTemplate.created_at.desc())
        )
        return await self._list(stmt)

    async def list_all(self) -> list[ImportTemplate]:
        return await self._list(select(ImportTemplate).order_by(ImportTemplate.created_at.desc()))

    async def get(self, template_id: int) -> ImportTemplate | None:
        try:
            async with get_session() as session:
                return await session.get(ImportTemplate, template_id)
        except DB_ERRORS as e:
            raise StoreError(f"Failed to load template {template_id}: {e}") from e

    async def create(
        self,
        *,
        name: str,
        source_url: str,
        mapping_schema: str,
        is_active: bool = True,
    ) -> ImportTemplate:
        """Create a template.

        Raises:
            SchemaError: If mapping_schema is invalid.
            StoreError: If the insert fails.
        """
        validate_mapping_schema(mapping_schema)
        template = ImportTemplate(
            name=name,
            source_url=source_url,
            mapping_schema=mapping_schema,
            is_active=is_active,
        )
        try:
            async with get_session() as session:
                session.add(template)
                await session.flush()
                await session.refresh(template)
        except DB_ERRORS as e:
            raise StoreError(f"Failed to create template {name!r}: {e}") from e
        return template

    async def update(
        self,
        template_id: int,
        *,
        name: str,
        source_url: str,
        mapping_schema: str,
        is_active: bool,
    ) -> ImportTemplate | None:
        """Update a template; returns None when it does not exist.

        Raises:
            SchemaError: If mapping_schema is invalid.
            StoreError: If the update fails.
        """
        validate_mapping_schema(mapping_schema)
        try:
            async with get_session() as session:
                template = await session.get(ImportTemplate, template_id)
                if template is None:
                    return None
                template.name = name
                template.source_url = source_url
                template.mapping_schema = mapping_schema
                template.is_active = is_active
                await session.flush()
                await session.refresh(template)
        except DB_ERRORS as e:
            raise StoreError(f"Failed to update template {template_id}: {e}") from e
        return template

    async def delete(self, template_id: int) -> bool:
        """Delete a template. Returns False if it did not exist."""
        try:
            async with get_session() as session:
                result = await session.execute(delete(ImportTemplate).where(ImportTemplate.id == template_id))
        except DB_ERRORS as e:
            raise StoreError(f"Failed to delete template {template_id}: {e}") from e
        return result.rowcount > 0

    async def mark_run(self, template_id: int) -> None:
        stmt = (
            update(ImportTemplate)
            .where(ImportTemplate.id == template_id)
            .values(last_run_at=datetime.now(timezone.utc))
        )
        try:
            async with get_session() as session:
                await session.execute(stmt)
        except DB_ERRORS as e:
            raise StoreError(f"Failed to update last_run_at for template {template_id}: {e}") from e

    async def _list(self, stmt) -> list[ImportTemplate]:
        try:
            async with get_session() as session:
                return list((await session.execute(stmt)).scalars().all())
        except DB_ERRORS as e:
            raise StoreError(f"Failed to query import templates: {e}") from e
