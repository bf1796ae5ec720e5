# tests/test_meeting_resolver.py
import pytest

from attendance_export.schemas.meeting import MeetingCandidate, SourceChannel
from attendance_export.services.graph_client import GraphClientError
from attendance_export.services.meeting_resolver import OnlineMeetingResolver

JOIN_URL = "https://teams.microsoft.com/l/meetup-join/19%3ameeting_abc%40thread.v2/0?context=%7b%7d"


class FakeGraphClient:
    """
    Simple stub for GraphClient used in resolver tests.
    """

    def __init__(self, payload=None, raise_error: bool = False):
        self.payload = payload or {"value": []}
        self.raise_error = raise_error
        self.calls = []

    async def get_json(self, path, params=None):
        self.calls.append((path, params))
        if self.raise_error:
            raise GraphClientError("Simulated Graph failure", status_code=500)
        return self.payload


def _candidate(**kwargs) -> MeetingCandidate:
    return MeetingCandidate(id="evt-1", subject="Standup", source_channel=SourceChannel.CALENDAR, **kwargs)


@pytest.mark.asyncio
async def test_existing_online_meeting_id_is_returned_without_graph_call():
    fake = FakeGraphClient()
    resolver = OnlineMeetingResolver(fake)

    result = await resolver.resolve("user-1", _candidate(online_meeting_id="MSo1N2Y5", join_url=JOIN_URL))

    assert result == "MSo1N2Y5"
    assert fake.calls == []


@pytest.mark.asyncio
async def test_join_url_is_looked_up_and_first_match_returned():
    fake = FakeGraphClient({"value": [{"id": "meeting-A"}, {"id": "meeting-B"}]})
    resolver = OnlineMeetingResolver(fake)
    candidate = _candidate(join_url=JOIN_URL)

    result = await resolver.resolve("user-1", candidate)

    assert result == "meeting-A"
    assert candidate.online_meeting_id == "meeting-A"
    path, params = fake.calls[0]
    assert path == "/v1.0/users/user-1/onlineMeetings"
    assert params == {"$filter": f"JoinWebUrl eq '{JOIN_URL}'"}


@pytest.mark.asyncio
async def test_no_match_returns_none():
    fake = FakeGraphClient({"value": []})
    resolver = OnlineMeetingResolver(fake)
    candidate = _candidate(join_url=JOIN_URL)

    assert await resolver.resolve("user-1", candidate) is None
    assert candidate.online_meeting_id is None


@pytest.mark.asyncio
async def test_without_id_or_join_url_returns_none():
    fake = FakeGraphClient()
    resolver = OnlineMeetingResolver(fake)

    assert await resolver.resolve("user-1", _candidate()) is None
    assert fake.calls == []


@pytest.mark.asyncio
async def test_single_quotes_in_join_url_are_escaped():
    fake = FakeGraphClient({"value": [{"id": "m"}]})
    resolver = OnlineMeetingResolver(fake)

    await resolver.resolve("user-1", _candidate(join_url="https://teams/l/o'brien"))

    _, params = fake.calls[0]
    assert params["$filter"] == "JoinWebUrl eq 'https://teams/l/o''brien'"


@pytest.mark.asyncio
async def test_graph_errors_propagate():
    resolver = OnlineMeetingResolver(FakeGraphClient(raise_error=True))

    with pytest.raises(GraphClientError):
        await resolver.resolve("user-1", _candidate(join_url=JOIN_URL))
