"""SQLAlchemy implementation of the TenancyStore protocol.

Every method runs in its own short-lived session. Rows are converted to the
core record types at the boundary, so no ORM instance escapes this module.

Usage:
    engine = build_engine(settings)
    store = SQLTenancyStore(build_session_factory(engine))
    tenant = await store.find_tenant("acme")
"""

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantgate.core.store import TenancyStore
from tenantgate.core.types import (
    DomainRecord,
    ImpersonationToken,
    TenantRecord,
    UserAccount,
    build_account,
    utcnow,
)
from tenantgate.db.models import Account, Domain, ImpersonationTokenModel, Tenant


def _tenant_record(row: Tenant) -> TenantRecord:
    return TenantRecord(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        password_hash=row.password_hash,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


def _domain_record(row: Domain) -> DomainRecord:
    return DomainRecord(domain=row.domain, tenant_id=row.tenant_id, created_at=row.created_at)


def _account_record(row: Account) -> UserAccount:
    return build_account(
        tenant_id=row.tenant_id,
        is_owner=row.is_owner,
        id=row.id,
        email=row.email,
        name=row.name,
        password_hash=row.password_hash,
        is_active=row.is_active,
        allowed_panels=frozenset(row.allowed_panels or ()),
        capabilities=frozenset(row.capabilities or ()),
    )


def _token_record(row: ImpersonationTokenModel) -> ImpersonationToken:
    return ImpersonationToken(
        token=row.token,
        tenant_id=row.tenant_id,
        user_email=row.user_email,
        redirect_path=row.redirect_path,
        panel=row.panel,
        impersonator_id=row.impersonator_id,
        created_at=row.created_at,
        expires_at=row.expires_at,
        consumed=row.consumed,
    )


def _account_filter(tenant_id: str | None, email: str):
    tenant_clause = Account.tenant_id.is_(None) if tenant_id is None else Account.tenant_id == tenant_id
    return tenant_clause, Account.email == email.lower()


class SQLTenancyStore(TenancyStore):
    """TenancyStore backed by a relational database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize the store.

        Args:
            session_factory: Factory producing async sessions bound to the engine
        """
        self._session_factory = session_factory

    # Domains

    async def find_domain_by_host(self, host: str) -> DomainRecord | None:
        async with self._session_factory() as db:
            row = await db.get(Domain, host.lower())
            return _domain_record(row) if row else None

    async def find_domains(self, tenant_id: str) -> list[DomainRecord]:
        stmt = select(Domain).where(Domain.tenant_id == tenant_id).order_by(Domain.created_at, Domain.domain)
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [_domain_record(row) for row in result.scalars()]

    async def create_domain(self, record: DomainRecord) -> DomainRecord:
        row = Domain(domain=record.domain.lower(), tenant_id=record.tenant_id, created_at=record.created_at)
        async with self._session_factory() as db:
            db.add(row)
            try:
                await db.commit()
            except IntegrityError as exc:
                raise ValueError(f"Domain already registered: {record.domain}") from exc
            return _domain_record(row)

    # Tenants

    async def find_tenant(self, tenant_id: str, *, include_deleted: bool = False) -> TenantRecord | None:
        async with self._session_factory() as db:
            row = await db.get(Tenant, tenant_id)
            if row is None or (row.deleted_at is not None and not include_deleted):
                return None
            return _tenant_record(row)

    async def find_tenant_by_name(self, name: str) -> TenantRecord | None:
        stmt = select(Tenant).where(func.lower(Tenant.name) == name.strip().lower())
        async with self._session_factory() as db:
            row = (await db.execute(stmt)).scalars().first()
            return _tenant_record(row) if row else None

    async def list_tenants(
        self,
        *,
        active: bool | None = None,
        include_deleted: bool = False,
    ) -> list[TenantRecord]:
        stmt = select(Tenant).order_by(Tenant.created_at.desc(), Tenant.id.desc())
        if not include_deleted:
            stmt = stmt.where(Tenant.deleted_at.is_(None))
        if active is not None:
            stmt = stmt.where(Tenant.is_active == active)
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [_tenant_record(row) for row in result.scalars()]

    async def create_tenant(self, record: TenantRecord) -> TenantRecord:
        row = Tenant(**record.model_dump())
        async with self._session_factory() as db:
            db.add(row)
            try:
                await db.commit()
            except IntegrityError as exc:
                raise ValueError(f"Tenant already exists: {record.id}") from exc
            return _tenant_record(row)

    async def save_tenant(self, record: TenantRecord) -> TenantRecord:
        async with self._session_factory() as db:
            row = await db.get(Tenant, record.id)
            if row is None:
                raise KeyError(record.id)
            for field, value in record.model_dump(exclude={"id", "created_at", "updated_at"}).items():
                setattr(row, field, value)
            row.updated_at = utcnow()
            await db.commit()
            return _tenant_record(row)

    # Accounts

    async def find_account(self, tenant_id: str | None, email: str) -> UserAccount | None:
        stmt = select(Account).where(*_account_filter(tenant_id, email))
        async with self._session_factory() as db:
            row = (await db.execute(stmt)).scalars().first()
            return _account_record(row) if row else None

    async def create_account(self, account: UserAccount) -> UserAccount:
        row = Account(
            id=account.id,
            tenant_id=account.tenant_id,
            email=account.email.lower(),
            name=account.name,
            password_hash=account.password_hash,
            is_active=account.is_active,
            is_owner=getattr(account, "is_owner", False),
            allowed_panels=sorted(account.allowed_panels),
            capabilities=sorted(account.capabilities),
        )
        async with self._session_factory() as db:
            db.add(row)
            try:
                await db.commit()
            except IntegrityError as exc:
                raise ValueError(f"Account already exists: {account.email}") from exc
            return _account_record(row)

    async def update_account_password(self, tenant_id: str | None, email: str, password_hash: str) -> bool:
        stmt = update(Account).where(*_account_filter(tenant_id, email)).values(password_hash=password_hash)
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount == 1

    async def rename_account(self, tenant_id: str | None, email: str, new_email: str) -> bool:
        stmt = update(Account).where(*_account_filter(tenant_id, email)).values(email=new_email.lower())
        async with self._session_factory() as db:
            try:
                result = await db.execute(stmt)
                await db.commit()
            except IntegrityError as exc:
                raise ValueError(f"Account already exists: {new_email}") from exc
            return result.rowcount == 1

    # Impersonation tokens

    async def create_token(self, record: ImpersonationToken) -> ImpersonationToken:
        row = ImpersonationTokenModel(**record.model_dump())
        async with self._session_factory() as db:
            db.add(row)
            await db.commit()
            return _token_record(row)

    async def find_token(self, tenant_id: str, token: str) -> ImpersonationToken | None:
        stmt = select(ImpersonationTokenModel).where(
            ImpersonationTokenModel.tenant_id == tenant_id,
            ImpersonationTokenModel.token == token,
        )
        async with self._session_factory() as db:
            row = (await db.execute(stmt)).scalars().first()
            return _token_record(row) if row else None

    async def update_token_consumed(
        self,
        tenant_id: str,
        token: str,
        expected_consumed: bool = False,
    ) -> bool:
        stmt = (
            update(ImpersonationTokenModel)
            .where(
                ImpersonationTokenModel.tenant_id == tenant_id,
                ImpersonationTokenModel.token == token,
                ImpersonationTokenModel.consumed == expected_consumed,
            )
            .values(consumed=not expected_consumed)
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount == 1

    async def delete_expired_tokens(self, tenant_id: str, now: datetime | None = None) -> int:
        stmt = delete(ImpersonationTokenModel).where(
            ImpersonationTokenModel.tenant_id == tenant_id,
            ImpersonationTokenModel.expires_at <= (now or utcnow()),
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount
