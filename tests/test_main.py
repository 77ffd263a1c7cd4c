"""Tests for the command line entry point."""

import json

import pytest

from lab_explorer import main as cli


class TestParser:
    def test_repeatable_clicks(self):
        args = cli.build_parser().parse_args(
            ["--click", "root", "--click", "group-projects", "-o", "out.json", "-v"]
        )
        assert args.click == ["root", "group-projects"]
        assert args.output == "out.json"
        assert args.verbose is True
        assert args.config is None

    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.click == []
        assert args.output is None


class TestReplay:
    @pytest.mark.asyncio
    async def test_replay_prints_status_lines(self, session, capsys):
        await cli.replay_clicks(session, ["root", "group-projects", "root"])
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 3
        assert "root" in lines[0] and "expanded" in lines[0]
        assert "collapsed" in lines[2]

    @pytest.mark.asyncio
    async def test_write_json_and_html(self, session, tmp_path):
        await cli.replay_clicks(session, ["root"])

        json_path = cli.write_output(session, str(tmp_path / "graph.json"))
        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert sorted(n["id"] for n in data["nodes"]) == ["group-projects", "group-researchers", "root"]
        assert len(data["links"]) == 2

        html_path = cli.write_output(session, str(tmp_path / "graph.html"))
        assert "group-researchers" in html_path.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_run_uses_configured_gateway(self, gateway, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(cli.RemoteDataGateway, "from_settings", classmethod(lambda cls, s: gateway))
        cfg = tmp_path / "config.yaml"
        cfg.write_text("explorer:\n  root_label: TESTLAB\n")

        args = cli.build_parser().parse_args(["--config", str(cfg), "--click", "root"])
        assert await cli.run(args) == 0
        out = capsys.readouterr().out
        assert "root\troot\tTESTLAB" in out
        assert "group-projects\tprojects_group\tProjects" in out


def test_package_exports_are_lazy():
    import lab_explorer

    assert lab_explorer.ExplorerSession.__name__ == "ExplorerSession"
    assert lab_explorer.FetchCache.__name__ == "FetchCache"
    with pytest.raises(AttributeError):
        lab_explorer.NotAThing
