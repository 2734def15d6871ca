import pytest
from app.workflow.assembler import FOOTER, SECTION_SEPARATOR, assemble, build_header, section_title

SUMMARY = {
    "productName": "Acme Notes",
    "coreValueProposition": "Meeting notes that write themselves",
    "productCategory": "AI Writing Assistant",
    "productStage": "beta",
    "targetMarketSize": "medium",
}


@pytest.mark.unit
class TestAssembler:
    def test_sections_follow_input_order(self):
        artifact = assemble({"stage-one": "A", "stage-two": "B", "stage-three": "C"}, SUMMARY)

        sections = ["# STAGE ONE\n\nA", "# STAGE TWO\n\nB", "# STAGE THREE\n\nC"]
        positions = [artifact.index(section) for section in sections]
        assert positions == sorted(positions)

    def test_reordered_input_reorders_sections(self):
        forward = assemble({"a": "first", "b": "second"}, {})
        backward = assemble({"b": "second", "a": "first"}, {})
        assert forward != backward
        assert backward.index("second") < backward.index("first")

    def test_exact_layout(self):
        artifact = assemble({"target-user-analysis": "Users text", "launch-timeline": "Timeline text"}, SUMMARY)
        assert artifact == (
            "# Launch Playbook for Acme Notes\n"
            "\n"
            "## Context Summary\n"
            "- **Product:** Acme Notes - Meeting notes that write themselves\n"
            "- **Category:** AI Writing Assistant\n"
            "- **Stage:** beta\n"
            "- **Target Market:** medium\n"
            "\n---\n\n"
            "# TARGET USER ANALYSIS\n\nUsers text"
            "\n\n---\n\n"
            "# LAUNCH TIMELINE\n\nTimeline text"
            "\n\n---\n\n"
            f"{FOOTER}"
        )

    def test_is_deterministic(self):
        outputs = {"stage-one": "A", "stage-two": "B"}
        assert assemble(outputs, SUMMARY) == assemble(dict(outputs), dict(SUMMARY))

    def test_empty_input_still_produces_document(self):
        artifact = assemble({}, {})
        assert artifact == SECTION_SEPARATOR.join([build_header({}), FOOTER])
        assert artifact.startswith("# Launch Playbook for Your Product")
        assert "- **Category:** Not specified" in artifact

    def test_empty_stage_output_is_kept(self):
        artifact = assemble({"stage-one": "", "stage-two": "B"}, {})
        assert "# STAGE ONE\n\n" in artifact
        assert "# STAGE TWO\n\nB" in artifact

    def test_blank_summary_fields_fall_back(self):
        header = build_header({"productName": "  ", "productCategory": None, "productStage": 2})
        assert header.startswith("# Launch Playbook for Your Product")
        assert "- **Product:** Not specified - Not specified" in header
        assert "- **Stage:** 2" in header

    @pytest.mark.parametrize("stage_id,title", [
        ("launch-timeline", "LAUNCH TIMELINE"),
        ("metrics_dashboard", "METRICS DASHBOARD"),
        ("single", "SINGLE"),
    ])
    def test_section_title(self, stage_id, title):
        assert section_title(stage_id) == title
