from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from ldcorrect.cli.main import main
from ldcorrect.core.yuv import Frame

NEAR_IDENTITY_LENS = "1.0,\n0.001,\n1.0,\n0, 0\n30, 0.5235987755982988\n"


def _write_inputs(root: Path, frame: Frame) -> tuple[Path, Path]:
    lens = root / "lens.csv"
    lens.write_text(NEAR_IDENTITY_LENS, encoding="utf-8")
    raw = root / "in.yuv"
    rng = np.random.default_rng(1)
    raw.write_bytes(rng.integers(0, 256, size=frame.buffer_size, dtype=np.uint8).tobytes())
    return lens, raw


@pytest.mark.integration
def test_cli_correct_writes_frame_preview_and_summary(tmp_path: Path, capsys) -> None:
    frame = Frame(width=8, height=6, variant=1)
    lens, raw = _write_inputs(tmp_path, frame)
    out = tmp_path / "out.yuv"
    preview = tmp_path / "out.png"

    rc = main(
        [
            "correct",
            "-i", str(raw),
            "-o", str(out),
            "-p", str(lens),
            "-w", "8",
            "-H", "6",
            "-f", "NV12",
            "--preview", str(preview),
            "--field-cache", str(tmp_path / "cache"),
        ]
    )
    assert rc == 0
    assert out.read_bytes() == raw.read_bytes()
    with Image.open(preview) as im:
        assert im.size == (8, 6)
    assert (tmp_path / "cache" / "field.json").exists()

    printed = capsys.readouterr().out
    assert "Frame Dimensions: (8, 6)" in printed
    assert f"Frame Mem. storage: {frame.buffer_size} B" in printed
    assert "Type of YUV frame: 'YUV420_NV12'" in printed


@pytest.mark.integration
def test_cli_correct_reports_size_mismatch(tmp_path: Path, capsys) -> None:
    frame = Frame(width=8, height=6, variant=1)
    lens, raw = _write_inputs(tmp_path, frame)
    rc = main(["correct", "-i", str(raw), "-o", str(tmp_path / "o.yuv"), "-p", str(lens), "-w", "8", "-H", "8", "-f", "1"])
    assert rc == 1
    assert "wrong size of yuv image" in capsys.readouterr().err
    assert not (tmp_path / "o.yuv").exists()


@pytest.mark.integration
def test_cli_dump_field_and_inspect(tmp_path: Path, capsys) -> None:
    lens, _ = _write_inputs(tmp_path, Frame(width=2, height=2, variant=1))
    out_h = tmp_path / "h_d.txt"
    out_v = tmp_path / "v_d.txt"
    rc = main(["dump-field", "-p", str(lens), "-w", "3", "-H", "2", "--out-h", str(out_h), "--out-v", str(out_v)])
    assert rc == 0
    lines = out_h.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert all(len(line.split()) == 3 for line in lines)

    rc = main(["inspect-lens", str(lens)])
    assert rc == 0
    printed = capsys.readouterr().out
    assert "Samples: 2" in printed
    assert "Z offset: 1000.000 px" in printed


@pytest.mark.integration
def test_cli_import_gray(tmp_path: Path) -> None:
    img = tmp_path / "g.png"
    Image.fromarray(np.full((2, 4), 77, dtype=np.uint8)).save(img)
    out = tmp_path / "g.yuv"
    rc = main(["import-gray", str(img), "-o", str(out), "-f", "uyvy"])
    assert rc == 0
    assert out.read_bytes() == bytes([128, 77, 128, 77] * 4)


def test_cli_rejects_unknown_format(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        main(["correct", "-i", "a", "-o", "b", "-p", "c", "-w", "2", "-H", "2", "-f", "i420"])


@pytest.mark.integration
def test_cli_reports_undecodable_lens_file(tmp_path: Path, capsys) -> None:
    lens = tmp_path / "lens.csv"
    lens.write_bytes(b"\xff\xfe\x00garbage\n")
    rc = main(["inspect-lens", str(lens)])
    assert rc == 1
    assert "cannot read lens parameters" in capsys.readouterr().err
