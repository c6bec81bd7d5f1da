"""Tests for the command-line entry point."""

import json

import pytest

import main


@pytest.fixture
def data_file(tmp_path):
    def write(content):
        path = tmp_path / "stages.json"
        path.write_text(json.dumps(content), encoding="utf-8")
        return path
    return write


class TestLoadInput:
    def test_plain_rows(self, data_file):
        rows, options = main.load_input(data_file([["A", 1]]))
        assert rows == [["A", 1]]
        assert options == {}

    def test_rows_with_options(self, data_file):
        rows, options = main.load_input(data_file({"rows": [["A", 1]], "options": {"inverted": True}}))
        assert rows == [["A", 1]]
        assert options == {"inverted": True}

    def test_options_must_be_an_object(self, data_file):
        with pytest.raises(ValueError):
            main.load_input(data_file({"rows": [["A", 1]], "options": [1, 2]}))


class TestBuildConfig:
    def test_flags_override_file_options(self):
        args = main.parse_args(["--data", "x.json", "--width", "500", "--curved", "--format", "{l}"])
        config = main.build_config(args, {"width": 200, "bottom_width": 0.25})
        assert config.width == 500
        assert config.bottom_width == 0.25
        assert config.curve.enabled is True
        assert config.label.format == "{l}"

    def test_unset_flags_keep_defaults(self):
        args = main.parse_args(["--data", "x.json"])
        config = main.build_config(args, {})
        assert config.inverted is False
        assert config.curve.enabled is False


class TestMain:
    def test_prints_layout(self, data_file, capsys):
        path = data_file([["A", 50], ["B", 30], ["C", 20]])
        assert main.main(["--data", str(path), "--width", "300", "--height", "300", "--bottom-width", "0.5"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert len(data["blocks"]) == 3
        assert data["blocks"][0]["path"] == "M0,0 L300,0 L275,100 L25,100 L0,0"

    def test_writes_output_file(self, data_file, tmp_path):
        path = data_file({"rows": [["A", 2], ["B", 1]], "options": {"curve": {"enabled": True}}})
        output = tmp_path / "layout.json"
        assert main.main(["--data", str(path), "--output", str(output)]) == 0

        data = json.loads(output.read_text(encoding="utf-8"))
        assert "top_cap" in data
        assert [block["label"]["raw"] for block in data["blocks"]] == ["A", "B"]

    def test_missing_file(self, tmp_path, capsys):
        assert main.main(["--data", str(tmp_path / "missing.json")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_rows(self, data_file):
        assert main.main(["--data", str(data_file([["A"]]))]) == 1

    def test_invalid_options(self, data_file):
        path = data_file({"rows": [["A", 1]], "options": {"bottom_width": 2}})
        assert main.main(["--data", str(path)]) == 1

    def test_degenerate_layout(self, data_file):
        assert main.main(["--data", str(data_file([["A", 0], ["B", 0]]))]) == 1

    def test_non_object_options(self, data_file, capsys):
        path = data_file({"rows": [["A", 1]], "options": [1, 2]})
        assert main.main(["--data", str(path)]) == 1
        assert "options" in capsys.readouterr().err
