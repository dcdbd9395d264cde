import json

from placemap.reporting import write_json_object, write_render_outputs


def test_write_json_object_nested_atomic(tmp_path):
    path = tmp_path / "render.json"
    payload = {
        "clusters": [{"id": "w4rqn", "count": 3}],
        "summary": "Yoga Studios · Evening",
        "nested": {"list": [1, 2, 3], "word": "กรุงเทพ"},
    }

    write_json_object(str(path), payload)

    text = path.read_text(encoding="utf-8")
    data = json.loads(text)
    assert data == payload
    assert "·" in text

    leftovers = [p for p in tmp_path.iterdir() if p.name != "render.json"]
    assert not leftovers


def test_write_render_outputs_creates_directory(tmp_path):
    out_dir = tmp_path / "out" / "nested"
    paths = write_render_outputs(
        str(out_dir), {"clusters": [], "singles": []}, ["No places in view"], metrics={"network": 1}
    )

    assert set(paths) == {"render", "summary", "metrics"}
    assert json.loads((out_dir / "render.json").read_text(encoding="utf-8")) == {
        "clusters": [],
        "singles": [],
    }
    assert (out_dir / "summary.txt").read_text(encoding="utf-8") == "No places in view"
    assert json.loads((out_dir / "request_metrics.json").read_text(encoding="utf-8")) == {"network": 1}

    paths = write_render_outputs(str(out_dir), {}, [])
    assert "metrics" not in paths


def _reject_constant(token):
    raise ValueError(f"non-standard JSON token {token}")


def test_write_json_object_replaces_non_finite_numbers(tmp_path):
    path = tmp_path / "render.json"
    payload = {
        "places": [{"id": "a", "lat": float("nan"), "metadata": {"capacity": float("inf")}}],
        "coordinate": (1.5, float("-inf")),
    }

    write_json_object(str(path), payload)

    data = json.loads(path.read_text(encoding="utf-8"), parse_constant=_reject_constant)
    assert data == {
        "places": [{"id": "a", "lat": None, "metadata": {"capacity": None}}],
        "coordinate": [1.5, None],
    }
