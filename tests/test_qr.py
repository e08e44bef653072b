from __future__ import annotations

from pywaweb.util.qr import render_ascii, write_svg


def test_render_ascii_draws_blocks() -> None:
    art = render_ascii("2@abcdef,ghijkl,mnopqr")
    assert len(art.splitlines()) > 10
    assert any(ch in art for ch in "█▀▄")


def test_write_svg(tmp_path) -> None:
    path = write_svg("2@abcdef", tmp_path / "qr.svg")
    content = path.read_text(encoding="utf-8")
    assert "<svg" in content
