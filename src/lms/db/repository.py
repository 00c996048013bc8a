from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from lms.auth.models import TokenClaims
from lms.auth.rbac import check_ownership, is_owner_scoped
from lms.db.user import user_exists
from lms.errors import (
    InvalidReference,
    MissingField,
    NotFound,
    StorageError,
    UnknownIdentity,
)
from lms.utils.db import DatabasePool
from lms.utils.logging import logger


@dataclass(frozen=True)
class ForeignKey:
    """A column whose value must name an existing row in ``table``.

    With ``scope_field`` set, the target row must also carry the same value in
    that column as the entity being written (e.g. a subcategory must belong to
    the course's category).
    """

    field: str
    table: str
    label: str
    scope_field: Optional[str] = None

    @property
    def message(self) -> str:
        if self.scope_field:
            return f"{self.label} not found or does not belong to the selected {self.scope_label}"
        return f"{self.label} not found"

    @property
    def scope_label(self) -> str:
        return self.scope_field.removesuffix("_id").replace("_", "") if self.scope_field else ""


@dataclass(frozen=True)
class EntityDescriptor:
    """Everything the generic repository and router need to know about one
    entity type."""

    name: str
    plural: str
    table: str
    alias: str
    fields: Tuple[str, ...]
    required: Tuple[str, ...]
    updatable: Tuple[str, ...]
    order_by: str
    defaults: Mapping[str, Any] = field(default_factory=dict)
    # updatable columns where a blank value ("" or 0) keeps the stored one
    keep_when_blank: Tuple[str, ...] = ()
    owner_field: str = "created_by"
    # roles that may only see and change rows they own
    owner_scoped_roles: FrozenSet[str] = frozenset()
    foreign_keys: Tuple[ForeignKey, ...] = ()
    # denormalized lookups available on both list and get
    lookup_columns: Tuple[str, ...] = ()
    joins: str = ""
    # aggregates only computed for list
    list_columns: Tuple[str, ...] = ()
    parent_filter: Optional[str] = None
    fallback_on_list_error: bool = False
    normalize: Optional[Callable[[Dict], Dict]] = None
    serialize: Optional[Callable[[Dict], Dict]] = None
    # None means any authenticated role
    read_roles: Optional[Tuple[str, ...]] = None
    create_roles: Optional[Tuple[str, ...]] = None
    write_roles: Optional[Tuple[str, ...]] = None


class EntityRepository:
    """List/get/create/update/delete for one entity type, driven by its
    descriptor."""

    def __init__(self, descriptor: EntityDescriptor, pool: DatabasePool):
        self.descriptor = descriptor
        self.pool = pool

    def _select(self, with_lookups: bool = True, with_aggregates: bool = False) -> str:
        d = self.descriptor
        columns = [f"{d.alias}.*"]
        joins = ""

        if with_lookups:
            columns.extend(d.lookup_columns)
            joins = d.joins
        if with_aggregates:
            columns.extend(d.list_columns)

        return f"SELECT {', '.join(columns)} FROM {d.table} {d.alias} {joins}"

    def _shape(self, row: Dict) -> Dict:
        if self.descriptor.serialize:
            return self.descriptor.serialize(row)
        return row

    def _ownership_message(self, action: str) -> str:
        return f"Access denied. You can only {action} your own {self.descriptor.plural}."

    async def _fetch_raw(self, entity_id: int) -> Optional[Dict]:
        return await self.pool.execute(
            f"SELECT * FROM {self.descriptor.table} WHERE id = ?",
            (entity_id,),
            fetch_one=True,
        )

    async def list(self, user: TokenClaims, parent_id: Optional[int] = None) -> List[Dict]:
        d = self.descriptor
        conditions = []
        params: List[Any] = []

        if d.parent_filter and parent_id is not None:
            conditions.append(f"{d.alias}.{d.parent_filter} = ?")
            params.append(parent_id)

        if is_owner_scoped(user, d.owner_scoped_roles):
            conditions.append(f"{d.alias}.{d.owner_field} = ?")
            params.append(user.user_id)

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        order = f" ORDER BY {d.alias}.{d.order_by}"

        try:
            rows = await self.pool.execute(
                self._select(with_aggregates=True) + where + order,
                params,
                fetch_all=True,
            )
        except StorageError as e:
            if not d.fallback_on_list_error:
                raise

            logger.warning(
                f"Joined {d.plural} query failed, using simple query: {e.error}"
            )
            try:
                rows = await self.pool.execute(
                    self._select(with_lookups=False) + where + order,
                    params,
                    fetch_all=True,
                )
            except StorageError:
                raise e

        return [self._shape(row) for row in rows]

    async def get(self, user: TokenClaims, entity_id: int) -> Dict:
        d = self.descriptor
        row = await self.pool.execute(
            self._select() + f" WHERE {d.alias}.id = ?",
            (entity_id,),
            fetch_one=True,
        )

        if not row:
            raise NotFound(f"{d.name} not found")

        check_ownership(
            user, row.get(d.owner_field), d.owner_scoped_roles, self._ownership_message("view")
        )

        return self._shape(row)

    async def _check_references(self, values: Dict, existing: Optional[Dict] = None):
        for fk in self.descriptor.foreign_keys:
            value = values.get(fk.field)
            if value is None:
                continue

            if fk.scope_field:
                scope_value = values.get(fk.scope_field)
                if scope_value is None and existing:
                    scope_value = existing.get(fk.scope_field)
                row = await self.pool.execute(
                    f"SELECT id FROM {fk.table} WHERE id = ? AND {fk.scope_field} = ?",
                    (value, scope_value),
                    fetch_one=True,
                )
            else:
                row = await self.pool.execute(
                    f"SELECT id FROM {fk.table} WHERE id = ?",
                    (value,),
                    fetch_one=True,
                )

            if not row:
                raise InvalidReference(fk.message)

    def _clean(self, data: Dict, allowed: Tuple[str, ...]) -> Dict:
        return {key: value for key, value in data.items() if key in allowed and value is not None}

    async def create(self, user: TokenClaims, data: Dict) -> Dict:
        d = self.descriptor
        values = self._clean(data, d.fields)

        missing = [name for name in d.required if values.get(name) in (None, "")]
        if missing:
            raise MissingField(missing)

        if d.normalize:
            values = d.normalize(values)

        await self._check_references(values)

        # a valid token may still name a user that no longer exists
        if not await user_exists(self.pool, user.user_id):
            logger.error(f"User ID {user.user_id} not found while creating {d.name}")
            raise UnknownIdentity(user.user_id)

        row_values = {**d.defaults, **values, d.owner_field: user.user_id}
        columns = list(row_values)

        entity_id = await self.pool.execute(
            f"""
            INSERT INTO {d.table} ({', '.join(columns)})
            VALUES ({', '.join('?' for _ in columns)})
            """,
            [row_values[column] for column in columns],
            get_last_row_id=True,
        )

        logger.info(f"{d.name} created successfully: id={entity_id}")
        return await self._fetch_raw(entity_id)

    async def update(self, user: TokenClaims, entity_id: int, data: Dict) -> Dict:
        d = self.descriptor
        existing = await self._fetch_raw(entity_id)

        if not existing:
            raise NotFound(f"{d.name} not found")

        check_ownership(
            user, existing.get(d.owner_field), d.owner_scoped_roles, self._ownership_message("update")
        )

        # omitted fields keep their stored value
        changes = self._clean(data, d.updatable)
        changes = {
            column: value
            for column, value in changes.items()
            if column not in d.keep_when_blank or value not in ("", 0)
        }
        if not changes:
            return existing

        if d.normalize:
            changes = d.normalize(changes)

        await self._check_references(changes, existing)

        assignments = ", ".join(f"{column} = ?" for column in changes)
        updated = await self.pool.execute(
            f"""
            UPDATE {d.table}
            SET {assignments}, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            [*changes.values(), entity_id],
            get_row_count=True,
        )

        if not updated:
            raise NotFound(f"{d.name} not found")

        return await self._fetch_raw(entity_id)

    async def delete(self, user: TokenClaims, entity_id: int) -> Dict:
        d = self.descriptor

        if d.owner_scoped_roles:
            existing = await self._fetch_raw(entity_id)
            if not existing:
                raise NotFound(f"{d.name} not found")

            check_ownership(
                user, existing.get(d.owner_field), d.owner_scoped_roles, self._ownership_message("delete")
            )

        # no cascade: dependent rows are left in place
        deleted = await self.pool.execute(
            f"DELETE FROM {d.table} WHERE id = ?",
            (entity_id,),
            get_row_count=True,
        )

        if not deleted:
            raise NotFound(f"{d.name} not found")

        return {"message": f"{d.name} deleted successfully"}
