"""Tests for RFQ requirement extraction — pattern path and LLM path."""

from unittest.mock import AsyncMock, patch

import pytest

from entitle.core.errors import InvalidInputError
from entitle.pipeline.rfq import extract_requirements, parse_rfq

MOD = "entitle.pipeline.rfq"

RFQ_TEXT = """\
Project Name: Harbor Point Offices, a new 5 story office building of approximately
40,000 SF on a corner lot. The building should be 65 feet tall with 120 parking spaces.
Target LEED Gold certification and a rooftop terrace for tenants.
Delivery in 18 months schedule from notice to proceed.
"""


class TestExtractRequirements:
    def test_common_fields(self):
        result = extract_requirements(RFQ_TEXT)
        assert result["project_name"] == "Harbor Point Offices"
        assert result["proposed_use"] == "office"
        assert result["target_sf"] == 40000
        assert result["height_needed_ft"] == 65
        assert result["stories"] == 5
        assert result["parking_stalls"] == 120
        assert result["timeline"] == "18 months schedule"
        assert result["sustainability_targets"] == ["LEED Gold"]
        assert result["special_requirements"] == ["Rooftop amenity"]
        assert result["lot_size"] is None
        assert result["confidence"] == {"proposed_use": "medium", "target_sf": "high", "height_needed_ft": "high"}

    def test_every_value_backed_by_source_text(self):
        extracts = {e["field"]: e for e in extract_requirements(RFQ_TEXT)["raw_extracts"]}
        assert extracts["target_sf"]["source_text"] == "40,000 SF"
        assert extracts["height_needed_ft"]["value"] == "65 ft"
        assert all(len(e["source_text"]) <= 100 for e in extracts.values())

    def test_post_office_is_not_office(self):
        result = extract_requirements(
            "Renovation of the historic post office into a community library of 12,000 square feet."
        )
        assert result["proposed_use"] == ""
        assert result["target_sf"] == 12000
        assert result["confidence"]["proposed_use"] == "low"

    def test_nothing_found(self):
        result = extract_requirements("We are seeking qualifications from interested firms for a project.")
        assert result["target_sf"] is None
        assert result["height_needed_ft"] is None
        assert result["confidence"]["target_sf"] == "low"
        assert result["sustainability_targets"] == []


class TestParseRfq:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "Office, 40k SF."])
    async def test_too_short_rejected(self, text):
        with pytest.raises(InvalidInputError):
            await parse_rfq(text)

    @pytest.mark.asyncio
    async def test_pattern_mode_without_llm(self):
        with patch(f"{MOD}.llm.complete_json", new_callable=AsyncMock) as complete:
            result = await parse_rfq(RFQ_TEXT)
        complete.assert_not_called()
        assert result["mode"] == "regex"
        assert result["document_length"] == len(RFQ_TEXT.strip())
        assert result["requirements"]["target_sf"] == 40000

    @pytest.mark.asyncio
    async def test_llm_mode(self):
        answer = {
            "project_name": "Harbor Point Offices",
            "proposed_use": "office",
            "target_sf": 40000,
            "sustainability_targets": "LEED Gold",
            "confidence": {"proposed_use": "high"},
            "raw_extracts": [{"field": "target_sf", "value": "40,000", "source_text": "40,000 SF"}, "junk"],
            "unrelated": "dropped",
        }
        with patch(f"{MOD}.llm.is_configured", return_value=True), \
             patch(f"{MOD}.llm.complete_json", new_callable=AsyncMock, return_value=answer) as complete:
            result = await parse_rfq(RFQ_TEXT)

        assert "Harbor Point Offices" in complete.await_args.args[0][1]["content"]
        assert result["mode"] == "ai"
        requirements = result["requirements"]
        assert requirements["proposed_use"] == "office"
        assert requirements["stories"] is None
        assert requirements["sustainability_targets"] == []
        assert requirements["raw_extracts"] == [answer["raw_extracts"][0]]
        assert "unrelated" not in requirements

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", [None, {"project_name": "x"}])
    async def test_unusable_llm_answer_falls_back(self, answer):
        with patch(f"{MOD}.llm.is_configured", return_value=True), \
             patch(f"{MOD}.llm.complete_json", new_callable=AsyncMock, return_value=answer):
            result = await parse_rfq(RFQ_TEXT)
        assert result["mode"] == "regex"
        assert result["requirements"]["parking_stalls"] == 120
