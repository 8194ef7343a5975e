import json

import httpx
import pytest

from first_greet.config import Settings
from first_greet.retell_client import RetellClient

TRANSFER_NUMBER = "+18475550100"


class FakeRetell:
    """In-memory stand-in for the Retell API, served through httpx.MockTransport."""

    def __init__(self, agents=None, phone_numbers=None, fail=None):
        self.agents = agents or []
        self.phone_numbers = phone_numbers or []
        self.fail = fail or {}          # path -> status code to answer with
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.calls.append((request.method, path, body))

        if path in self.fail:
            return httpx.Response(self.fail[path], json={"error_message": "rejected"})

        if path == "/create-retell-llm":
            return httpx.Response(201, json={"llm_id": "llm_new", **body})
        if path == "/list-agents":
            return httpx.Response(200, json=self.agents)
        if path.startswith("/get-agent/"):
            agent_id = path.rsplit("/", 1)[1]
            for agent in self.agents:
                if agent["agent_id"] == agent_id:
                    return httpx.Response(200, json=agent)
            return httpx.Response(404, json={"error_message": "Not Found"})
        if path == "/create-agent":
            return httpx.Response(201, json={"agent_id": "agent_new", **body})
        if path.startswith("/update-agent/"):
            agent_id = path.rsplit("/", 1)[1]
            return httpx.Response(200, json={"agent_id": agent_id, **body})
        if path.startswith("/delete-"):
            return httpx.Response(204)
        if path == "/list-phone-numbers":
            return httpx.Response(200, json=self.phone_numbers)
        if path.startswith("/update-phone-number/"):
            number = path.rsplit("/", 1)[1]
            return httpx.Response(200, json={"phone_number": number, **body})
        return httpx.Response(404, json={"error_message": "Not Found"})

    def requests(self, method, prefix):
        return [call for call in self.calls if call[0] == method and call[1].startswith(prefix)]

    def client(self, settings: Settings) -> RetellClient:
        return RetellClient.from_settings(settings, transport=httpx.MockTransport(self))


def make_settings(**overrides) -> Settings:
    values = {
        "retell_api_key": "key_test",
        "transfer_phone_number": TRANSFER_NUMBER,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def first_greet_number():
    return {
        "phone_number": "+13125550199",
        "phone_number_pretty": "(312) 555-0199",
        "nickname": "First Greet main line",
        "inbound_agent_id": "agent_old",
        "outbound_agent_id": "agent_old",
    }
