"""FastAPI application exposing the rice-mill ledgers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from ricemill.data_repository import get_engine
from ricemill.schema import ensure_schema
from ricemill.user_service import bootstrap_default_admin
from ricemill_api.api import auth as auth_router
from ricemill_api.api import invoices as invoices_router
from ricemill_api.api import purchases as purchases_router
from ricemill_api.api import reports as reports_router
from ricemill_api.api import sales as sales_router
from ricemill_api.api import suppliers as suppliers_router
from ricemill_api.api import users as users_router
from ricemill_api.dependencies.security import require_ledger_access
from ricemill_api.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
]


def _prepare_database(settings: Settings) -> None:
    """Crée les tables en local et le compte admin initial si la base est vide."""

    engine = get_engine()
    if engine.dialect.name == "sqlite" or settings.app_env in {"development", "dev"}:
        ensure_schema(engine)
    try:
        bootstrap_default_admin()
    except SQLAlchemyError:
        # Base indisponible : on démarre quand même.
        logger.warning("Default admin bootstrap failed", exc_info=True)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    _prepare_database(app.state.settings)
    yield


@lru_cache
def create_app() -> FastAPI:
    """Construit l'application FastAPI ainsi que tous les routeurs métier."""

    settings = Settings.load()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Rice Mill API",
        version="1.0.0",
        description="""
## API de gestion d'une rizerie

- **Fournisseurs** : registre, statut actif/inactif
- **Achats** : lots de paddy, coût total, stock restant
- **Ventes** : contrôle du stock, bénéfice net, rendement
- **Factures** : lignes, numérotation, encaissements, balance âgée

### Authentification
OAuth2 + JWT. Obtenez un token via `/auth/token`.
        """,
        openapi_tags=[
            {"name": "auth", "description": "Authentification et gestion des tokens"},
            {"name": "users", "description": "Comptes admin / manager"},
            {"name": "suppliers", "description": "Registre des fournisseurs"},
            {"name": "purchases", "description": "Achats et stock"},
            {"name": "sales", "description": "Ventes et rentabilité"},
            {"name": "invoices", "description": "Factures clients"},
            {"name": "reports", "description": "Tableau de bord"},
        ],
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_lifespan,
    )
    app.state.settings = settings

    allowed_origins = settings.cors_allowed_origins or DEFAULT_ALLOWED_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router.router)
    app.include_router(users_router.router)

    # Authentification + rôle minimal sur toutes les routes métier.
    ledger_router = APIRouter(dependencies=[Depends(require_ledger_access)])
    ledger_router.include_router(suppliers_router.router)
    ledger_router.include_router(purchases_router.router)
    ledger_router.include_router(sales_router.router)
    ledger_router.include_router(invoices_router.router)
    ledger_router.include_router(reports_router.router)
    app.include_router(ledger_router)

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    logger.info("Application created (env=%s)", settings.app_env)
    return app


app = create_app()
