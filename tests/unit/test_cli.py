"""Tests for the cwlogs-ship command."""

import io

import pytest

from cwlogs import CloudWatch
from cwlogs.cli import build_parser, chunked, main, read_lines, render_stats, ship
from tests.mocks import FakeCloudWatchService, RecordingTransport


@pytest.fixture(autouse=True)
def no_dotenv(mocker):
    """Keep a stray .env file from leaking into the tests."""
    return mocker.patch("cwlogs.cli.load_dotenv")


@pytest.fixture
def aws_env(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIDEXAMPLE")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.delenv("CWLOGS_RETRIES", raising=False)
    monkeypatch.delenv("CWLOGS_LARGE_MESSAGES", raising=False)
    return monkeypatch


@pytest.fixture
def fake_engine(mocker):
    """Make main() build engines on top of a fake service."""
    service = FakeCloudWatchService()
    transport = RecordingTransport(service)
    created: list[CloudWatch] = []

    def factory(config, group_name=None, stream_name=None):
        engine = CloudWatch(config, group_name=group_name, stream_name=stream_name, transport=transport)
        created.append(engine)
        return engine

    mocker.patch("cwlogs.cli.CloudWatch", side_effect=factory)
    return service, transport, created


class TestHelpers:
    def test_chunked(self):
        assert list(chunked(["a", "b", "c", "d", "e"], 2)) == [["a", "b"], ["c", "d"], ["e"]]
        assert list(chunked([], 3)) == []

    def test_read_lines_from_files(self, tmp_path):
        first = tmp_path / "a.log"
        second = tmp_path / "b.log"
        first.write_text("one\ntwo\n", encoding="utf-8")
        second.write_text("three", encoding="utf-8")

        assert list(read_lines([str(first), str(second)])) == ["one", "two", "three"]

    def test_read_lines_from_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("x\ny\n"))
        assert list(read_lines([])) == ["x", "y"]

    def test_parser_requires_destination(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["file.log"])

    def test_render_stats(self):
        stats = {
            "group_name": "app",
            "stream_name": "web",
            "sent_batches": 1,
            "sent_events": 3,
            "pending_batches": 0,
            "pending_events": 0,
            "error_count": 0,
            "last_error": None,
        }
        table = render_stats(stats)
        assert table.title == "app/web"
        assert table.row_count == 5

    @pytest.mark.asyncio
    async def test_ship_closes_engine(self, config, service, transport):
        engine = CloudWatch(config, group_name="app", stream_name="web", transport=transport)

        stats = await ship(engine, ["a", "b", "c"], chunk_size=2)

        assert stats["sent_events"] == 3
        assert stats["sent_batches"] == 2
        assert service.delivered_messages("app", "web") == ["a", "b", "c"]


class TestMain:
    def test_ships_file(self, aws_env, fake_engine, tmp_path, capsys):
        service, _, _ = fake_engine
        log_file = tmp_path / "deploy.log"
        log_file.write_text("starting\ndone\n", encoding="utf-8")

        exit_code = main(["--group", "deploys", "--stream", "build-7", str(log_file)])

        assert exit_code == 0
        assert service.delivered_messages("deploys", "build-7") == ["starting", "done"]
        assert "Shipped 2 events" in capsys.readouterr().err

    def test_loads_dotenv(self, aws_env, fake_engine, no_dotenv, tmp_path):
        log_file = tmp_path / "x.log"
        log_file.write_text("x\n", encoding="utf-8")

        main(["--group", "g", "--stream", "s", str(log_file)])

        no_dotenv.assert_called_once_with()

    def test_options_reach_config(self, aws_env, fake_engine, tmp_path):
        _, _, created = fake_engine
        log_file = tmp_path / "x.log"
        log_file.write_text("x\n", encoding="utf-8")

        main(["--group", "g", "--stream", "s", "--retries", "5", "--large-messages", "split", str(log_file)])

        [engine] = created
        assert engine.retries == 5
        assert engine.config.large_message_behavior.value == "split"

    def test_missing_credentials(self, monkeypatch, capsys):
        monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)

        assert main(["--group", "g", "--stream", "s"]) == 2
        assert "AWS_ACCESS_KEY_ID" in capsys.readouterr().err

    def test_delivery_failure(self, aws_env, fake_engine, tmp_path):
        service, _, _ = fake_engine
        service.add_stream("g", "s")
        for _ in range(3):
            service.fail_next("PutLogEvents", 500, {"__type": "InternalFailure", "message": "boom"})
        log_file = tmp_path / "x.log"
        log_file.write_text("x\n", encoding="utf-8")

        assert main(["--group", "g", "--stream", "s", str(log_file)]) == 1

    def test_invalid_destination(self, aws_env, fake_engine, tmp_path):
        log_file = tmp_path / "x.log"
        log_file.write_text("x\n", encoding="utf-8")

        assert main(["--group", "bad group", "--stream", "s", str(log_file)]) == 1
