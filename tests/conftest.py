"""
Shared fixtures: minimal Darknet model files on disk.
"""

import pytest

CFG_TEXT = """[net]
# Testing
batch=1
subdivisions=1
width=416
height=416
channels=3

[convolutional]
batch_normalize=1
filters=32
size=3
stride=2
pad=1
activation=leaky

[yolo]
mask = 3,4,5
classes=3
"""

NAMES_TEXT = "person\nbicycle\ncar\n"


@pytest.fixture
def model_files(tmp_path):
    """Write weights/cfg/names files and return their paths."""
    weights = tmp_path / "tiny.weights"
    cfg = tmp_path / "tiny.cfg"
    names = tmp_path / "tiny.names"
    weights.write_bytes(b"\x00" * 2048)
    cfg.write_text(CFG_TEXT, encoding="utf-8")
    names.write_text(NAMES_TEXT, encoding="utf-8")
    return weights, cfg, names
