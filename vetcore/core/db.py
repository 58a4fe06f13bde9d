from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.POSTGRES_DSN, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

async def init_models():
    ## In dev-only "create_all" mode; otherwise, migrations own the schema.
    if settings.DB_MANAGE == "create_all":
        # import every model module so the metadata is complete
        import vetcore.modules.directory.models  # noqa: F401
        import vetcore.modules.availability.models  # noqa: F401
        import vetcore.modules.appointments.models  # noqa: F401
        import vetcore.modules.credits.models  # noqa: F401
        import vetcore.modules.verification.models  # noqa: F401
        import vetcore.modules.audit.models  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
