from unittest.mock import AsyncMock, patch

import pytest

from clarity.cli import main as cli_main


@pytest.fixture(autouse=True)
def quiet_setup():
    with patch.object(cli_main, "configure_logging"), patch.object(cli_main, "configure_tracing"):
        yield


def test_parser_defaults():
    parser = cli_main.build_parser()

    assert parser.parse_args(["ingest"]).max_pages == 20
    assert parser.parse_args(["health-check"]).batch_size == 50
    assert parser.parse_args(["ingest", "--max-pages", "3"]).max_pages == 3


def test_ingest_invokes_service(capsys):
    with patch.object(cli_main, "ingest", new=AsyncMock(return_value={"fetched": 2})) as mock_ingest:
        exit_code = cli_main.main(["ingest", "--max-pages", "5"])

    assert exit_code == 0
    mock_ingest.assert_awaited_once_with(5)
    assert '"fetched": 2' in capsys.readouterr().out


def test_health_check_invokes_service():
    with patch.object(cli_main, "health_check", new=AsyncMock(return_value={"checked": 0})) as mock_check:
        exit_code = cli_main.main(["health-check", "--batch-size", "7"])

    assert exit_code == 0
    mock_check.assert_awaited_once_with(7)


def test_init_db():
    with patch.object(cli_main, "init_db", return_value={"categories_created": 8}) as mock_init:
        assert cli_main.main(["init-db"]) == 0

    mock_init.assert_called_once_with()


def test_fatal_error_exits_non_zero():
    with patch.object(cli_main, "ingest", new=AsyncMock(side_effect=RuntimeError("db down"))):
        assert cli_main.main(["ingest"]) == 1


def test_missing_command_is_usage_error():
    with pytest.raises(SystemExit):
        cli_main.main([])
