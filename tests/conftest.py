from datetime import date
from pathlib import Path
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.api.routes import derivation, health
from app.domain.models import StaticProfile
from app.domain.services.config_engine import ConfigEngine
import app.main as app_main


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture()
def config_engine() -> ConfigEngine:
    engine = ConfigEngine(CONFIG_DIR)
    engine.load_all()
    return engine


@pytest.fixture()
def profiles() -> list[StaticProfile]:
    return [
        StaticProfile(subject_id="m1", name="Olena", role="Sales", entity_ids=("UA",)),
        StaticProfile(subject_id="m2", name="Taras", role="SeniorSales", entity_ids=("UA",)),
        StaticProfile(subject_id="m3", name="Iryna", role="Consultant", entity_ids=("PL",)),
        StaticProfile(subject_id="m4", name="Marta", role="SMM", entity_ids=("UA", "PL")),
        StaticProfile(
            subject_id="m5", name="Petro", role="SMM", entity_ids=("UA",), status="inactive"
        ),
        StaticProfile(subject_id="m6", name="Anna", role="Support", entity_ids=("UA",)),
    ]


@pytest.fixture()
def today() -> date:
    return date(2026, 2, 10)


@pytest.fixture()
async def app(config_engine) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(derivation.router, prefix="/api/v1/derive", tags=["Derivation"])

    # Routes read the engine from app.main like in production
    app_main.config_engine = config_engine
    yield app
    app_main.config_engine = None


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
