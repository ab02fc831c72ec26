import base64
from functools import partial

import pytest

from teamcert.certificate_generator import CertificateGenerator
from teamcert.layout import TEAM_ONLY_ELEMENTS
from teamcert.roster_cache import RosterCache
from teamcert.roster_handler import load_roster
from teamcert.verification import (
    NOT_FOUND_MESSAGE,
    RENDER_FAILED_MESSAGE,
    ROSTER_UNAVAILABLE_MESSAGE,
    SUCCESS_MESSAGE,
    CertificateService,
)

from conftest import FakeRenderer, write_roster_csv


def make_service(roster_path, template_path, clock, **kwargs):
    kwargs.setdefault("renderer_factory", FakeRenderer)
    cache = RosterCache(partial(load_roster, roster_path), clock=clock)
    return CertificateService(cache, template_path=str(template_path), **kwargs)


@pytest.fixture
def service(roster_csv, template_path, fake_clock):
    return make_service(roster_csv, template_path, fake_clock)


@pytest.mark.asyncio
async def test_matching_details_generate_certificate(service):
    result = await service.verify_and_generate_certificate("jane   doe", "team alpha")

    assert result.success is True
    assert result.message == SUCCESS_MESSAGE
    assert base64.b64decode(result.artifact).startswith(b"%PDF-fake")

    drawn = FakeRenderer.instances[-1].drawn
    assert [d["text"] for d in drawn] == ["TEAM ALPHA", "Northern Technical Institute"]
    assert drawn[0]["size"] == 40


@pytest.mark.asyncio
async def test_unknown_team_is_rejected(service):
    result = await service.verify_and_generate_certificate("Jane Doe", "Team Beta")

    assert result.success is False
    assert result.message == NOT_FOUND_MESSAGE
    assert result.artifact is None


@pytest.mark.asyncio
async def test_both_fields_must_match(service):
    assert await service.verify("Jane Doe", "Byte Busters") is None
    assert await service.verify("John Smith", "Team Alpha") is None
    assert await service.verify("John Smith", "byte  BUSTERS") is not None


@pytest.mark.asyncio
async def test_first_duplicate_in_roster_order_wins(tmp_path, template_path, fake_clock):
    roster = write_roster_csv(
        tmp_path / "dupes.csv",
        [
            {"username": "Jane Doe", "teamName": "Team Alpha", "collegeName": "First College"},
            {"username": "JANE DOE", "teamName": "team  alpha", "collegeName": "Second College"},
        ],
    )
    service = make_service(roster, template_path, fake_clock)

    record = await service.verify("jane doe", "team alpha")
    assert record.organization_name == "First College"


@pytest.mark.asyncio
async def test_missing_roster_is_reported_as_unavailable(tmp_path, template_path, fake_clock):
    service = make_service(tmp_path / "missing.xlsx", template_path, fake_clock)

    result = await service.verify_and_generate_certificate("Jane Doe", "Team Alpha")

    assert result.success is False
    assert result.message == ROSTER_UNAVAILABLE_MESSAGE
    assert result.message != NOT_FOUND_MESSAGE


@pytest.mark.asyncio
async def test_empty_roster_finds_nobody(template_path, fake_clock):
    service = CertificateService(RosterCache(lambda: [], clock=fake_clock), template_path=str(template_path))

    result = await service.verify_and_generate_certificate("Jane Doe", "Team Alpha")

    assert result.success is False
    assert result.message == NOT_FOUND_MESSAGE
    assert result.message != ROSTER_UNAVAILABLE_MESSAGE


@pytest.mark.asyncio
async def test_long_team_name_is_shrunk_to_fit(service):
    result = await service.verify_and_generate_certificate(
        "Ana Lima", "quantum leap   algorithmic society"
    )

    assert result.success is True
    renderer = FakeRenderer.instances[-1]
    (team,) = renderer.drawn
    width = renderer.text_width(team["text"], team["size"])
    max_width = 0.7 * renderer.page_size[0]
    assert 20 <= team["size"] < 40
    assert width <= max_width
    assert renderer.text_width(team["text"], team["size"] + 1) > max_width


@pytest.mark.asyncio
async def test_text_is_centred_on_the_canvas(service):
    await service.verify_and_generate_certificate("John Smith", "Byte Busters")

    renderer = FakeRenderer.instances[-1]
    team, organization = renderer.drawn
    canvas_width, canvas_height = renderer.page_size
    team_width = renderer.text_width(team["text"], team["size"])
    org_width = renderer.text_width(organization["text"], organization["size"])

    assert team["x"] + team_width / 2 == pytest.approx(canvas_width / 2 - 25)
    assert organization["x"] + org_width / 2 == pytest.approx(canvas_width / 2)
    assert team["y"] == pytest.approx(canvas_height * 0.68)
    assert organization["y"] == pytest.approx(canvas_height * 0.65)


@pytest.mark.asyncio
async def test_team_only_elements_skip_organization(roster_csv, template_path, fake_clock):
    service = make_service(roster_csv, template_path, fake_clock, elements=TEAM_ONLY_ELEMENTS)

    await service.verify_and_generate_certificate("Jane Doe", "Team Alpha")

    assert [d["text"] for d in FakeRenderer.instances[-1].drawn] == ["TEAM ALPHA"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "participant_name, team_name, message",
    [
        ("", "Team Alpha", "Full name is required"),
        ("   ", "Team Alpha", "Full name is required"),
        ("Jane Doe", "", "Team name is required"),
        (None, None, "Full name is required"),
    ],
)
async def test_blank_input_is_rejected_before_roster_lookup(tmp_path, template_path, fake_clock, participant_name, team_name, message):
    calls = []

    def loader():
        calls.append(1)
        return []

    service = CertificateService(RosterCache(loader, clock=fake_clock), template_path=str(template_path))

    result = await service.verify_and_generate_certificate(participant_name, team_name)

    assert result.success is False
    assert result.message == message
    assert calls == []


@pytest.mark.asyncio
async def test_missing_template_fails_generation(roster_csv, tmp_path, fake_clock):
    service = make_service(roster_csv, tmp_path / "missing.png", fake_clock)

    result = await service.verify_and_generate_certificate("Jane Doe", "Team Alpha")

    assert result.success is False
    assert result.message == RENDER_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_missing_font_fails_generation(roster_csv, template_path, tmp_path, fake_clock):
    service = make_service(roster_csv, template_path, fake_clock, font_path=str(tmp_path / "missing.otf"))

    result = await service.verify_and_generate_certificate("Jane Doe", "Team Alpha")

    assert result.message == RENDER_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_renderer_crash_is_reported_not_raised(roster_csv, template_path, fake_clock):
    class BrokenRenderer(FakeRenderer):
        def to_pdf_bytes(self):
            raise RuntimeError("disk full")

    service = make_service(roster_csv, template_path, fake_clock, renderer_factory=BrokenRenderer)

    result = await service.verify_and_generate_certificate("Jane Doe", "Team Alpha")

    assert result.success is False
    assert result.message == RENDER_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_strict_fit_rejects_overflowing_text(tmp_path, template_path, fake_clock):
    roster = write_roster_csv(
        tmp_path / "roster.csv",
        [{"username": "Ana", "teamName": "X" * 200, "collegeName": ""}],
    )
    service = make_service(roster, template_path, fake_clock, strict_fit=True)

    result = await service.verify_and_generate_certificate("Ana", "X" * 200)

    assert result.message == RENDER_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_real_generator_returns_pdf(roster_csv, template_path, fake_clock):
    service = make_service(roster_csv, template_path, fake_clock, renderer_factory=CertificateGenerator)

    result = await service.verify_and_generate_certificate("Jane Doe", "Team Alpha")

    assert result.success is True
    assert base64.b64decode(result.artifact).startswith(b"%PDF")
