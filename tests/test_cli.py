from __future__ import annotations

import importlib.util
from pathlib import Path

import numpy as np
import pytest

from texcol.core_types import PixelBuffer
from texcol.image_io import load_pixel_buffer, save_pixel_buffer

SCRIPT = Path(__file__).resolve().parents[1] / "texcol.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("texcol_cli", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def images(tmp_path, random_buffer):
    target = save_pixel_buffer(tmp_path / "target.png", random_buffer(6, 4, 0.2, 0.8))
    reference = save_pixel_buffer(tmp_path / "reference.png", random_buffer(5, 5))
    return target, reference


def test_reference_transfer_writes_default_output(cli, images, capsys):
    target, reference = images
    code = cli.main([str(target), "--reference", str(reference), "--mode", "histogram", "--palette", "3"])
    assert code == 0
    written = target.with_name("target_texcol.png")
    assert written.exists()
    assert load_pixel_buffer(written).width == 6
    out = capsys.readouterr().out
    assert "[texcol]" in out and "Colours used:" in out


def test_difference_operation(cli, images, tmp_path):
    target, _ = images
    out_path = tmp_path / "shifted.png"
    code = cli.main(
        [str(target), "--from-colour", "#808080", "--to-colour", "#a06040", "--balance", "simple",
         "--out", str(out_path)]
    )
    assert code == 0
    before = load_pixel_buffer(target).pixels
    after = load_pixel_buffer(out_path).pixels
    assert not np.allclose(before, after)


def test_mask_operation(cli, images, tmp_path):
    target, reference = images
    mask = PixelBuffer.filled((1.0, 1.0, 1.0, 1.0), 5, 5)
    mask_path = save_pixel_buffer(tmp_path / "mask.png", mask)
    code = cli.main([str(target), "--reference", str(reference), "--mask", str(mask_path), "--debug"])
    assert code == 0


def test_folder_skips_previous_outputs(cli, images, tmp_path):
    _, reference = images
    out_dir = tmp_path / "out"
    assert cli.main([str(tmp_path), "--colour", "#3366cc", "--out", str(out_dir), "--jobs", "2"]) == 0
    names = sorted(p.name for p in out_dir.iterdir())
    assert names == ["reference_texcol.png", "target_texcol.png"]


@pytest.mark.parametrize(
    "extra",
    [
        [],
        ["--from-colour", "#ffffff"],
        ["--target-colour", "#ffffff"],
        ["--colour", "#zzzzzz"],
    ],
)
def test_bad_flag_combinations_exit_with_2(cli, images, extra, capsys):
    target, _ = images
    assert cli.main([str(target), *extra]) == 2
    assert "[error]" in capsys.readouterr().err


def test_missing_target_exits_with_2(cli, tmp_path):
    assert cli.main([str(tmp_path / "nope.png"), "--colour", "#ffffff"]) == 2
