from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import models  # noqa: F401 - registers tables
from app.db.base import Base
from app.services.expo_client import ExpoPushClient

PUSH_URL = "https://expo.test/--/api/v2/push/send"
RECEIPTS_URL = "https://expo.test/--/api/v2/push/getReceipts"


def expo_token(index: int) -> str:
    return f"ExponentPushToken[device-{index:04d}]"


def ticket_id_for(token: str) -> str:
    return f"ticket-{token}"


class FakeExpoGateway:
    """In-process stand-in for Expo's send and getReceipts endpoints."""

    def __init__(self) -> None:
        self.send_calls: List[List[Dict[str, Any]]] = []
        self.receipt_calls: List[List[str]] = []
        self.failing_send_calls: set[int] = set()
        self.failing_receipt_calls: set[int] = set()
        self.ticket_overrides: Dict[str, Dict[str, Any]] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        payload = json.loads(request.content)
        if request.url.path.endswith("/send"):
            call = len(self.send_calls)
            self.send_calls.append(payload)
            if call in self.failing_send_calls:
                return httpx.Response(503, json={"errors": [{"code": "INTERNAL_SERVER_ERROR"}]})
            tickets = [
                self.ticket_overrides.get(
                    message["to"], {"status": "ok", "id": ticket_id_for(message["to"])}
                )
                for message in payload
            ]
            return httpx.Response(200, json={"data": tickets})

        call = len(self.receipt_calls)
        self.receipt_calls.append(payload["ids"])
        if call in self.failing_receipt_calls:
            return httpx.Response(500, text="upstream exploded")
        data = {ticket_id: self.receipts[ticket_id] for ticket_id in payload["ids"] if ticket_id in self.receipts}
        return httpx.Response(200, json={"data": data})

    def client(self, access_token: str | None = None) -> ExpoPushClient:
        return ExpoPushClient(
            push_url=PUSH_URL,
            receipts_url=RECEIPTS_URL,
            access_token=access_token,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def expo():
    return FakeExpoGateway()
