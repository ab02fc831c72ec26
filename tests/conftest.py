import csv
import io
import pathlib
import sys

import pytest
from PIL import Image

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

ROSTER_ROWS = [
    {"username": "Jane Doe", "teamName": "Team Alpha", "collegeName": "NORTHERN technical institute", "Email": "jane@example.com"},
    {"username": "John Smith", "teamName": "Byte Busters", "collegeName": "east valley college", "Email": "john@example.com"},
    {"username": "Ana Lima", "teamName": "Quantum Leap Algorithmic Society", "collegeName": "", "Email": ""},
]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeRenderer:
    """Renderer with predictable metrics: each character is 0.6 em wide."""

    page_size = (1000, 700)
    instances = []

    def __init__(self, template_bytes, font_bytes=None, color=(0, 0, 0), resolution=300.0):
        self.template_bytes = template_bytes
        self.font_bytes = font_bytes
        self.color = color
        self.drawn = []
        FakeRenderer.instances.append(self)

    def text_width(self, text, size):
        return len(text) * size * 0.6

    def draw_text(self, text, x, y, size):
        self.drawn.append({"text": text, "x": x, "y": y, "size": size})

    def to_pdf_bytes(self):
        return b"%PDF-fake " + " | ".join(d["text"] for d in self.drawn).encode()


def write_roster_csv(path, rows, fieldnames=None):
    fieldnames = fieldnames or list(rows[0].keys())
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    return path


def make_template_png(size=(800, 600), color="navy"):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def roster_csv(tmp_path):
    return write_roster_csv(tmp_path / "roster.csv", ROSTER_ROWS)


@pytest.fixture
def template_path(tmp_path):
    path = tmp_path / "certificate_template.png"
    path.write_bytes(make_template_png())
    return path


@pytest.fixture(autouse=True)
def reset_fake_renderer():
    FakeRenderer.instances = []
    yield
