"""
Tests for nudge_studio/main.py -- the command line entry point.
"""

import json
from unittest.mock import patch

import pytest

from nudge_studio.main import main


@pytest.fixture
def settings_file(tmp_path):
    """Settings pointing the template directory into tmp_path."""
    templates = tmp_path / "templates"
    templates.mkdir()
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"templates_dir": str(templates), "api_url": "http://api.test"}),
                    encoding="utf-8")
    return str(path)


@pytest.fixture
def campaign_file(tmp_path, sample_payload):
    path = tmp_path / "campaign.json"
    path.write_text(json.dumps(sample_payload), encoding="utf-8")
    return str(path)


class TestNew:
    def test_writes_seeded_campaign(self, tmp_path, settings_file, capsys):
        output = tmp_path / "out" / "new.json"
        code = main(["--settings", settings_file, "new", "banner", "--name", "Promo", "-o", str(output)])
        assert code == 0
        assert capsys.readouterr().out.strip() == str(output)
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["name"] == "Promo"
        assert payload["config"]["type"] == "banner"
        assert len(payload["config"]["layers"]) == 3

    def test_from_template(self, tmp_path, settings_file):
        output = tmp_path / "sale.json"
        main(["--settings", settings_file, "new", "bottomsheet", "--template", "flash-sale", "-o", str(output)])
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["config"]["bottomSheetConfig"]["height"] == "half"

    def test_template_for_other_type(self, tmp_path, settings_file, capsys):
        code = main(["--settings", settings_file, "new", "modal", "--template", "flash-sale",
                     "-o", str(tmp_path / "x.json")])
        assert code == 2
        assert "flash-sale" in capsys.readouterr().err


class TestValidateAndRender:
    def test_validate_ok(self, settings_file, campaign_file, capsys):
        assert main(["--settings", settings_file, "validate", campaign_file]) == 0
        assert "OK (3 layers, modal)" in capsys.readouterr().out

    def test_validate_not_ready(self, tmp_path, settings_file, sample_payload, capsys):
        sample_payload["name"] = ""
        path = tmp_path / "unnamed.json"
        path.write_text(json.dumps(sample_payload), encoding="utf-8")
        assert main(["--settings", settings_file, "validate", str(path)]) == 1
        assert "Campaign name is required" in capsys.readouterr().err

    def test_validate_broken_file(self, tmp_path, settings_file, capsys):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({"name": "x"}), encoding="utf-8")
        assert main(["--settings", settings_file, "validate", str(path)]) == 2
        assert "config" in capsys.readouterr().err

    def test_render_outline(self, settings_file, campaign_file, capsys):
        assert main(["--settings", settings_file, "render", campaign_file, "--selected", "title"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert out[0] == "overlay"
        assert "modal [root]" in out[1]
        assert any("text [title] 'Spring sale' *" in line for line in out)

    def test_render_json(self, settings_file, campaign_file, capsys):
        main(["--settings", settings_file, "render", campaign_file, "--json"])
        tree = json.loads(capsys.readouterr().out)
        assert tree["children"][0]["layerId"] == "root"


class TestTemplates:
    def test_lists_builtins(self, settings_file, capsys):
        assert main(["--settings", settings_file, "templates", "--type", "modal"]) == 0
        out = capsys.readouterr().out
        assert "welcome-modal" in out
        assert "flash-sale" not in out


class TestPush:
    def test_push_rewrites_file(self, settings_file, campaign_file, capsys):
        with patch("nudge_studio.main.ApiClient.save_ticket", return_value="srv-42") as save:
            assert main(["--settings", settings_file, "push", campaign_file]) == 0
        assert save.call_args.args[0].is_new is True
        assert "pushed srv-42" in capsys.readouterr().out
        payload = json.loads(open(campaign_file, encoding="utf-8").read())
        assert payload["id"] == "srv-42"
        assert payload["lastSaved"] is not None

    def test_push_failure(self, settings_file, campaign_file, capsys):
        from nudge_studio.services.api_client import ApiError

        with patch("nudge_studio.main.ApiClient.save_ticket", side_effect=ApiError("down", 503)):
            assert main(["--settings", settings_file, "push", campaign_file]) == 1
        assert "push failed: down (HTTP 503)" in capsys.readouterr().err


def test_version(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--version"])
    assert info.value.code == 0
    assert "nudge-studio" in capsys.readouterr().out
