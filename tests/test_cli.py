import json

import pytest

import cli


def run(capsys, *argv):
    code = cli.main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err


@pytest.mark.parametrize("raw, expected", [
    ("5:hello", "hello"),
    ("i-52e", -52),
    ("l5:helloi52ee", ["hello", 52]),
    ("d3:foo3:bar5:helloi52ee", {"foo": "bar", "hello": 52}),
])
def test_decode(capsys, raw, expected):
    code, out, _ = run(capsys, "decode", raw)
    assert code == 0
    assert json.loads(out) == expected


def test_decode_malformed(capsys):
    code, out, err = run(capsys, "decode", "5:hi")
    assert code == 1
    assert out == ""
    assert "error:" in err


def test_info(capsys, tmp_path, torrent_bytes, meta):
    path = tmp_path / "sample.torrent"
    path.write_bytes(torrent_bytes)

    code, out, _ = run(capsys, "info", str(path))

    assert code == 0
    lines = out.splitlines()
    assert lines[0] == "Tracker URL: http://tracker.test/announce"
    assert lines[1] == f"Length: {meta.total_length}"
    assert lines[2] == f"Info Hash: {meta.info_hash.hex()}"
    assert lines[3] == "Piece Length: 32768"
    assert lines[4] == "Piece Hashes:"
    assert lines[5:] == [h.hex() for h in meta.piece_hashes]


def test_info_missing_file(capsys, tmp_path):
    code, _, err = run(capsys, "info", str(tmp_path / "nope.torrent"))
    assert code == 1
    assert "error:" in err


def test_peers(capsys, tmp_path, torrent_bytes, fake_tracker):
    path = tmp_path / "sample.torrent"
    path.write_bytes(torrent_bytes)
    fake_tracker(b"d5:peers12:\x7f\x00\x00\x01\x1a\xe1\x0a\x00\x00\x02\x1a\xe2e")

    code, out, _ = run(capsys, "peers", str(path))

    assert code == 0
    assert out.splitlines() == ["127.0.0.1:6881", "10.0.0.2:6882"]


def test_handshake_bad_address(capsys, tmp_path, torrent_bytes):
    path = tmp_path / "sample.torrent"
    path.write_bytes(torrent_bytes)

    code, _, err = run(capsys, "handshake", str(path), "no-port")
    assert code == 1
    assert "ip:port" in err


def test_download_piece_bad_index(capsys, tmp_path, torrent_bytes):
    path = tmp_path / "sample.torrent"
    path.write_bytes(torrent_bytes)
    out_path = tmp_path / "piece"

    code, _, err = run(capsys, "download_piece", "-o", str(out_path), str(path), "7")

    assert code == 1
    assert "out of range" in err
    assert not out_path.exists()


def test_bad_peer_id_flag(capsys):
    code, _, err = run(capsys, "--peer-id", "short", "decode", "i1e")
    assert code == 1
    assert "peer_id" in err


def test_parse_peer_address():
    assert cli.parse_peer_address("165.232.33.77:51467") == ("165.232.33.77", 51467)
    with pytest.raises(ValueError):
        cli.parse_peer_address(":80")
