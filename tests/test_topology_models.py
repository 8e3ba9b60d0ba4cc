import pytest

from ibtopo.topology.models import (
    BadArgumentsError,
    Log,
    LogNotParsedError,
    LogStatus,
    NotFoundError,
    Repository,
    TopologyData,
    TopologyError,
    TopologyGroup,
    TopologyResult,
    UnavailableError,
)


@pytest.mark.parametrize(
    "error_cls, message",
    [
        (BadArgumentsError, "arguments are not acceptable"),
        (NotFoundError, "resource is not found"),
        (UnavailableError, "dependency unavailable"),
        (LogNotParsedError, "log is not parsed"),
    ],
)
def test_error_default_messages(error_cls, message):
    err = error_cls()
    assert str(err) == message
    assert isinstance(err, TopologyError)


def test_error_custom_message_is_kept():
    err = NotFoundError("log 7 is missing")
    assert str(err) == "log 7 is missing"


def test_log_status_values():
    assert LogStatus.PROCESSING.value == "processing"
    assert LogStatus.PARSED.value == "parsed"
    assert LogStatus.FAILED.value == "failed"
    assert LogStatus("parsed") is LogStatus.PARSED
    assert str(LogStatus.FAILED) == "failed"
    assert LogStatus.PARSED == "parsed"


def test_log_status_rejects_unknown():
    with pytest.raises(ValueError):
        LogStatus("archived")


def test_topology_data_defaults_are_independent():
    first = TopologyData()
    second = TopologyData()
    first.nodes.append("x")
    assert second.nodes == []
    assert first.log == Log()


def test_group_lists_are_independent():
    first = TopologyGroup(name="Hosts", kind="host")
    second = TopologyGroup(name="Hosts", kind="host")
    first.node_ids.append(1)
    assert second.node_ids == []


def test_result_summary_starts_empty():
    result = TopologyResult(log_id=3)
    assert result.summary.edges_count == 0
    assert result.edges == []


class _FakeRepository:
    def __init__(self, data):
        self.data = data

    def ping(self):
        return None

    def get_topology_data(self, log_id):
        return self.data


class _Incomplete:
    def ping(self):
        return None


def test_repository_protocol_matches_fake():
    data = TopologyData(log=Log(id=5, status=LogStatus.PARSED))
    repo = _FakeRepository(data)

    got = repo.get_topology_data(5)
    assert got.log.id == 5
    assert got.log.status == "parsed"
    assert isinstance(repo, Repository)
    assert not isinstance(_Incomplete(), Repository)