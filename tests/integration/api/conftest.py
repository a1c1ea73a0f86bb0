"""Fixtures for API integration tests."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from bbsync.application.services import PlaylistActionsService, PlaylistSyncService
from bbsync.config import Settings
from bbsync.main import create_app


# Hey future me - entering TestClient runs the real lifespan (tables, notifier, real
# BilibiliClient). We then swap both services for ones talking to FakeBilibiliApi, so
# no request in these tests ever leaves the process.
@pytest.fixture
def client(settings: Settings, fake_api) -> Generator[TestClient, None, None]:
    app = create_app(settings)
    with TestClient(app) as test_client:
        state = app.state
        state.sync_service = PlaylistSyncService(
            bilibili_api=fake_api,
            session_scope=state.db.session_scope,
            notifier=state.notifier,
        )
        state.actions_service = PlaylistActionsService(
            bilibili_api=fake_api,
            session_scope=state.db.session_scope,
        )
        yield test_client
