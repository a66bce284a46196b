"""
End-to-end tests running a persisted container behind the HTTP API.
"""

import io
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from kidsfind.core.config import Config
from kidsfind.services.container import ServiceContainer
from kidsfind.web.app import create_app
from testing_utilities import FakeClock

API = "/api/v1"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_listening_audio_is_sealed_and_expires(
    test_config: Config, clock: FakeClock
) -> None:
    """A stopped session leaves an encrypted clip that maintenance later removes."""
    container = ServiceContainer(test_config, clock=clock)

    with TestClient(create_app(container=container)) as client:
        client.post(f"{API}/listening/premium", json={"parent_id": "parent-1"})
        response = client.post(
            f"{API}/listening/sessions",
            json={
                "child_id": "child-1",
                "parent_id": "parent-1",
                "duration": 30,
                "reason": "safety_check",
                "audio_quality": "low",
                "require_consent": False,
            },
        )
        session_id = response.json()["data"]["id"]
        client.post(f"{API}/listening/sessions/{session_id}/stop")

        session = container.listening.get_session(session_id)
        clip = Path(session.audio_file)
        assert clip.suffix == ".enc"
        assert not clip.read_bytes().startswith(b"RIFF")

        audio, sample_rate = sf.read(
            io.BytesIO(container.listening.read_session_audio(session_id))
        )
        assert sample_rate == 16000
        assert np.all(audio == 0)

    clock.advance(hours=25)
    restarted = ServiceContainer(test_config, clock=clock)
    await restarted.initialize()
    try:
        history = restarted.listening.get_session_history("parent-1", days=30)
        assert [s.id for s in history] == [session_id]

        assert await restarted.run_maintenance() == {"expired_sessions": 1}
        assert not clip.exists()
        assert restarted.listening.get_session_history("parent-1", days=30) == []
    finally:
        await restarted.shutdown()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_open_sos_alert_is_closed_after_restart(
    test_config: Config, clock: FakeClock
) -> None:
    container = ServiceContainer(test_config, clock=clock)

    with TestClient(create_app(container=container)) as client:
        client.post(
            f"{API}/contacts",
            json={"name": "Papa", "phone_number": "0600000001", "relationship": "parent"},
        )
        response = client.post(
            f"{API}/alerts/sos/create",
            json={
                "child_id": "child-1",
                "location": {"latitude": 45.76, "longitude": 4.83},
            },
        )
        alert_id = response.json()["data"]["id"]
        assert client.get("/health").json()["data"]["emergency_mode"] is True

    restarted = ServiceContainer(test_config, clock=clock)
    with TestClient(create_app(container=restarted)) as client:
        details = client.get(f"{API}/alerts/sos/{alert_id}").json()["data"]
        assert details["alert"]["status"] == "cancelled"
        assert details["alert"]["cancelled_by"] == "system_restart"
        assert client.get("/health").json()["data"]["emergency_mode"] is False

        contacts = client.get(f"{API}/contacts?filter=emergency").json()["data"]
        assert [c["name"] for c in contacts] == ["Papa"]
