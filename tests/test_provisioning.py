"""Pipeline behaviour against a fake Retell API."""

import httpx
import pytest

from first_greet.provisioning import Provisioner, ProvisioningError, Stage, provision
from first_greet.retell_client import RetellClient

from conftest import FakeRetell, make_settings

EXISTING_AGENT = {
    "agent_id": "agent_fg",
    "agent_name": "First Greet",
    "response_engine": {"type": "retell-llm", "llm_id": "llm_old"},
}


# ---------------------------------------------------------------------------
# Agent upsert
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_existing_agent_is_updated_not_created(settings):
    fake = FakeRetell(agents=[{"agent_id": "agent_other", "agent_name": "Receptionist"}, EXISTING_AGENT])

    result = await provision(settings, client=fake.client(settings))

    assert result.agent.agent_id == "agent_fg"
    assert result.agent.created is False
    assert fake.requests("POST", "/create-agent") == []
    updates = fake.requests("PATCH", "/update-agent/")
    assert updates == [
        (
            "PATCH",
            "/update-agent/agent_fg",
            {"response_engine": {"type": "retell-llm", "llm_id": "llm_new"}},
        )
    ]


@pytest.mark.asyncio
async def test_missing_agent_is_created_once_with_voice_profile(settings):
    fake = FakeRetell(agents=[{"agent_id": "agent_other", "agent_name": "First Greet (old)"}])

    result = await provision(settings, client=fake.client(settings))

    assert result.agent.agent_id == "agent_new"
    assert result.agent.created is True
    assert fake.requests("PATCH", "/update-agent/") == []
    (create,) = fake.requests("POST", "/create-agent")
    assert create[2] == {
        "response_engine": {"type": "retell-llm", "llm_id": "llm_new"},
        "voice_id": "11labs-Grace",
        "agent_name": "First Greet",
        "version_description": "Enhanced call screening with owner approval and voicemail mode",
        "language": "en-US",
        "voice_speed": 1.0,
        "responsiveness": 0.9,
        "interruption_sensitivity": 0.7,
        "enable_backchannel": True,
        "backchannel_frequency": 0.6,
        "enable_voicemail_detection": True,
        "voicemail_message": "Hi, this is First Greet. Mike will return your call soon.",
        "end_call_after_silence_ms": 30000,
        "max_call_duration_ms": 3600000,
    }


@pytest.mark.asyncio
async def test_pinned_agent_id_skips_name_lookup():
    settings = make_settings(retell_agent_id="agent_fg")
    renamed = dict(EXISTING_AGENT, agent_name="Renamed in dashboard")
    fake = FakeRetell(agents=[renamed])

    result = await provision(settings, client=fake.client(settings))

    assert result.agent.agent_id == "agent_fg"
    assert fake.requests("GET", "/list-agents") == []
    assert len(fake.requests("GET", "/get-agent/agent_fg")) == 1
    assert len(fake.requests("PATCH", "/update-agent/agent_fg")) == 1
    assert fake.requests("POST", "/create-agent") == []


# ---------------------------------------------------------------------------
# Phone binding
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_phone_already_bound_is_left_alone(settings, first_greet_number):
    first_greet_number["inbound_agent_id"] = "agent_fg"
    fake = FakeRetell(agents=[EXISTING_AGENT], phone_numbers=[first_greet_number])

    result = await provision(settings, client=fake.client(settings))

    assert fake.requests("PATCH", "/update-phone-number/") == []
    assert result.phone.rebound is False
    assert result.phone.pretty == "(312) 555-0199"


@pytest.mark.asyncio
async def test_phone_bound_elsewhere_is_rebound(settings, first_greet_number):
    fake = FakeRetell(
        agents=[EXISTING_AGENT],
        phone_numbers=[{"phone_number": "+13125550100", "nickname": None}, first_greet_number],
    )

    result = await provision(settings, client=fake.client(settings))

    assert fake.requests("PATCH", "/update-phone-number/") == [
        (
            "PATCH",
            "/update-phone-number/+13125550199",
            {"inbound_agent_id": "agent_fg", "outbound_agent_id": "agent_fg"},
        )
    ]
    assert result.phone.rebound is True


@pytest.mark.asyncio
async def test_no_matching_phone_number(settings):
    fake = FakeRetell(
        agents=[EXISTING_AGENT],
        phone_numbers=[{"phone_number": "+13125550100", "nickname": "Support"}],
    )

    result = await provision(settings, client=fake.client(settings))

    assert result.phone is None
    assert fake.requests("PATCH", "/update-phone-number/") == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_llm_failure_stops_before_agent_and_phone(settings):
    fake = FakeRetell(agents=[EXISTING_AGENT], fail={"/create-retell-llm": 422})

    with pytest.raises(ProvisioningError) as excinfo:
        await provision(settings, client=fake.client(settings))

    assert [call[1] for call in fake.calls] == ["/create-retell-llm"]
    error = excinfo.value
    assert error.reached == Stage.START
    assert error.mutated is False
    assert error.to_dict()["cause"]["status_code"] == 422
    assert "nothing was changed" in str(error)


@pytest.mark.asyncio
async def test_agent_failure_reports_llm_created(settings):
    fake = FakeRetell(fail={"/list-agents": 401})

    with pytest.raises(ProvisioningError) as excinfo:
        await provision(settings, client=fake.client(settings))

    error = excinfo.value
    assert error.reached == Stage.LLM_CREATED
    assert error.mutated is True
    assert error.completed["llm"].llm_id == "llm_new"
    assert "LLM created but agent step failed" in str(error)
    # rollback is off by default
    assert fake.requests("DELETE", "/") == []


@pytest.mark.asyncio
async def test_rollback_deletes_created_resources_in_reverse():
    settings = make_settings(rollback_on_failure=True)
    fake = FakeRetell(fail={"/list-phone-numbers": 500})
    async with fake.client(settings) as client:
        provisioner = Provisioner(client, settings)
        with pytest.raises(ProvisioningError) as excinfo:
            await provisioner.run()

    assert excinfo.value.reached == Stage.AGENT_RESOLVED
    assert provisioner.stage == Stage.FAILED
    assert [call[1] for call in fake.requests("DELETE", "/")] == [
        "/delete-agent/agent_new",
        "/delete-retell-llm/llm_new",
    ]


@pytest.mark.asyncio
async def test_rollback_restores_previous_engine_of_updated_agent():
    settings = make_settings(rollback_on_failure=True)
    fake = FakeRetell(agents=[EXISTING_AGENT], fail={"/list-phone-numbers": 500})

    with pytest.raises(ProvisioningError):
        await provision(settings, client=fake.client(settings))

    updates = fake.requests("PATCH", "/update-agent/agent_fg")
    assert [u[2]["response_engine"]["llm_id"] for u in updates] == ["llm_new", "llm_old"]
    assert [call[1] for call in fake.requests("DELETE", "/")] == ["/delete-retell-llm/llm_new"]


@pytest.mark.asyncio
async def test_progress_walks_through_all_stages(settings, first_greet_number):
    fake = FakeRetell(agents=[EXISTING_AGENT], phone_numbers=[first_greet_number])
    lines = []
    async with fake.client(settings) as client:
        provisioner = Provisioner(client, settings, progress=lines.append)
        await provisioner.run()

    assert provisioner.stage == Stage.DONE
    assert lines[0].startswith("Step 1")
    assert any(line.startswith("Step 2") for line in lines)
    assert any(line.startswith("Step 3") for line in lines)


@pytest.mark.asyncio
async def test_failed_rollback_step_does_not_mask_original_error():
    settings = make_settings(rollback_on_failure=True)
    fake = FakeRetell(agents=[EXISTING_AGENT], fail={"/list-phone-numbers": 500})

    def handler(request):
        response = fake(request)
        # the second agent PATCH is the restore
        if len(fake.requests("PATCH", "/update-agent/")) == 2 and request.method == "PATCH":
            return httpx.Response(200, text="<html>ok</html>")
        return response

    client = RetellClient.from_settings(settings, transport=httpx.MockTransport(handler))
    with pytest.raises(ProvisioningError) as excinfo:
        await provision(settings, client=client)

    assert excinfo.value.reached == Stage.AGENT_RESOLVED
    assert excinfo.value.to_dict()["cause"]["status_code"] == 500
    # unwinding continued past the failed restore
    assert [call[1] for call in fake.requests("DELETE", "/")] == ["/delete-retell-llm/llm_new"]
