import hashlib
import json

from repocity.cli import load_repositories, main
from repocity.protocol import CityLayout
from repocity.utils.hash import sha256sum


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_repositories_accepts_wrapped_list(tmp_path):
    repos = [{"name": "a", "stars": 1}]
    assert load_repositories(write_json(tmp_path / "a.json", repos)) == repos
    assert load_repositories(write_json(tmp_path / "b.json", {"repos": repos})) == repos
    assert load_repositories(write_json(tmp_path / "c.json", {})) == []


def test_main_writes_layout_and_textures(tmp_path):
    repos = write_json(tmp_path / "repos.json", [
        {"name": "a", "stars": 0},
        {"name": "b", "stars": 10000},
    ])
    branding = write_json(tmp_path / "brand.json", {"accentColor": "#00ffcc"})
    out = tmp_path / "out" / "city.msgpack"
    textures = tmp_path / "tex"

    code = main([
        str(repos), "--branding", str(branding),
        "--out", str(out), "--textures", str(textures), "--log-level", "WARNING",
    ])

    assert code == 0
    layout = CityLayout.unpack(out.read_bytes())
    assert [b.name for b in layout.buildings] == ["b", "a"]
    assert len(layout.accent_lights) == 2
    assert (textures / "0000_front.png").exists()
    assert (textures / "0001_label.png").exists()
    assert (textures / "sky.png").exists()


def test_main_returns_one_for_empty_list(tmp_path):
    repos = write_json(tmp_path / "repos.json", [])
    assert main([str(repos), "--log-level", "ERROR"]) == 1


def test_main_reports_unreadable_input(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert main([str(bad), "--log-level", "CRITICAL"]) == 2
    assert main([str(tmp_path / "missing.json"), "--log-level", "CRITICAL"]) == 2


def test_events_log(tmp_path):
    repos = write_json(tmp_path / "repos.json", [{"name": "solo", "stars": 5}])
    log_dir = tmp_path / "logs"
    assert main([str(repos), "--log-level", "ERROR", "--log-dir", str(log_dir)]) == 0
    assert (log_dir / "events.log").exists()


def test_sha256sum_matches_hashlib(tmp_path):
    path = tmp_path / "blob.bin"
    data = bytes(range(256)) * 1000
    path.write_bytes(data)
    assert sha256sum(path, buf=4096) == hashlib.sha256(data).hexdigest()
