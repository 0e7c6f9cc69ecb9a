"""Tests for the command-line runner."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dealscout import cli
from dealscout.scrapers.sources import COMMUNITY_SOURCES, MARKETPLACE_SOURCES


@pytest.fixture
def fake_discovery(make_listing):
    """Patch DealDiscovery so main() runs without network access."""
    instance = MagicMock()
    instance.discover = AsyncMock(return_value=[make_listing("B0C1234567", score=88)])
    instance.aclose = AsyncMock()
    with patch("dealscout.cli.DealDiscovery", return_value=instance) as cls, \
            patch("dealscout.cli.configure_logging"):
        yield cls, instance


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = cli.parse_args([])
        assert args.limit == 20
        assert args.sources == "community"
        assert args.budget is None
        assert args.as_json is False

    def test_rejects_unknown_source_group(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["--sources", "forums"])


class TestMain:
    """Tests for main()."""

    def test_limit_is_capped(self, fake_discovery, capsys):
        cls, instance = fake_discovery

        assert cli.main(["--limit", "80"]) == 0

        instance.discover.assert_awaited_once_with(50)
        instance.aclose.assert_awaited_once()
        assert cls.call_args.kwargs["sources"] == COMMUNITY_SOURCES

    def test_source_group_and_budget(self, fake_discovery, capsys):
        cls, _ = fake_discovery

        cli.main(["--sources", "marketplace", "--budget", "7"])

        kwargs = cls.call_args.kwargs
        assert kwargs["sources"] == MARKETPLACE_SOURCES
        assert kwargs["config"].REQUEST_BUDGET == 7

    def test_json_output(self, fake_discovery, capsys):
        cli.main(["--json"])

        data = json.loads(capsys.readouterr().out)
        assert data[0]["listing_id"] == "B0C1234567"
        assert data[0]["score"] == 88
        assert data[0]["price"] == "209.30"
        assert data[0]["category"] == "electronics"

    def test_table_output(self, fake_discovery, capsys):
        cli.main([])

        out = capsys.readouterr().out
        assert "Fone de Ouvido Bluetooth JBL Tune 520BT" in out
        assert "R$ 209.30" in out


def test_format_table_empty():
    assert cli.format_table([]) == "No deals passed the quality filter."
