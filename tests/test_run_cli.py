import json
from datetime import datetime

import pytest
import requests

import run


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr(run, "load_env", lambda *args, **kwargs: None)
    monkeypatch.delenv("PLACES_ENDPOINT", raising=False)


def _write_config(tmp_path):
    path = tmp_path / "map_config.json"
    path.write_text("{}", encoding="utf-8")
    return str(path)


def _write_places(tmp_path):
    path = tmp_path / "places.json"
    places = [
        {"id": "a", "name": "Yoga Loft", "lat": 13.7563, "lng": 100.5018,
         "categories": ["fitness"], "tags": ["yoga"]},
        {"id": "b", "name": "Sun Studio", "lat": 13.7563, "lng": 100.5018,
         "categories": ["fitness"], "tags": ["yoga"]},
        {"id": "c", "name": "Track", "lat": 13.80, "lng": 100.55,
         "categories": ["outdoors"], "tags": ["running"]},
    ]
    path.write_text(json.dumps({"places": places}), encoding="utf-8")
    return path


def test_parse_reference_time():
    base = datetime(2026, 3, 2, 8, 30, 12)
    assert run.parse_reference_time("23:15", today=base) == datetime(2026, 3, 2, 23, 15)
    assert run.parse_reference_time(None, today=base) == base
    with pytest.raises(ValueError):
        run.parse_reference_time("25:00", today=base)


def test_main_writes_render_payload(tmp_path):
    out_dir = tmp_path / "out"
    code = run.main(
        [
            "--places", str(_write_places(tmp_path)),
            "--config", _write_config(tmp_path),
            "--lat", "13.7563",
            "--lng", "100.5018",
            "--delta", "0.01",
            "--category", "yoga",
            "--at", "12:00",
            "--out", str(out_dir),
        ]
    )
    assert code == 0

    payload = json.loads((out_dir / "render.json").read_text(encoding="utf-8"))
    assert [s["place"]["id"] for s in payload["singles"]] == ["a", "b"]
    assert payload["summary"] == "Yoga Studios"
    summary = (out_dir / "summary.txt").read_text(encoding="utf-8").splitlines()
    assert summary[0] == "2 places in view"


def test_main_fetch_without_endpoint_fails(tmp_path, capsys):
    code = run.main(
        ["--fetch", "--config", _write_config(tmp_path), "--out", str(tmp_path / "out")]
    )
    assert code == 1
    assert "No places endpoint" in capsys.readouterr().err


def test_main_reports_unavailable_provider(tmp_path, monkeypatch, capsys):
    class FailingHttpClient:
        def __init__(self, *args, **kwargs):
            pass

        def get_json(self, url, params, extra_headers=None):
            raise requests.ConnectionError("offline")

    monkeypatch.setattr(run, "HttpClient", FailingHttpClient)
    code = run.main(
        [
            "--fetch",
            "--endpoint", "https://places.example.test",
            "--config", _write_config(tmp_path),
            "--cache-path", str(tmp_path / "cache.db"),
            "--out", str(tmp_path / "out"),
        ]
    )
    assert code == 1
    assert "Place data unavailable" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()


def test_main_missing_config_file_fails(tmp_path, capsys):
    code = run.main(
        [
            "--places", str(_write_places(tmp_path)),
            "--config", str(tmp_path / "missing.json"),
            "--out", str(tmp_path / "out"),
        ]
    )
    assert code == 1
    assert "Config file not found" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()


def test_main_writes_strict_json_for_non_finite_metadata(tmp_path):
    path = tmp_path / "places.json"
    path.write_text(
        '{"places": [{"id": "a", "name": "Loft", "lat": 13.7563, "lng": 100.5018,'
        ' "metadata": {"capacity": NaN}}]}',
        encoding="utf-8",
    )
    out_dir = tmp_path / "out"
    code = run.main(
        ["--places", str(path), "--config", _write_config(tmp_path), "--out", str(out_dir)]
    )
    assert code == 0

    def reject(token):
        raise ValueError(token)

    payload = json.loads((out_dir / "render.json").read_text(encoding="utf-8"), parse_constant=reject)
    assert payload["places"][0]["metadata"] == {"capacity": None}
