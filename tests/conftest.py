import pytest
import sys
from pathlib import Path

# Add src to sys.path so we can import markscheme_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from markscheme_toolkit.core.models import CurriculumTables, Subtopic, Topic, Unit  # noqa: E402


# Common test fixtures
@pytest.fixture
def curriculum_dict() -> dict:
    """
    Two units that both contain a topic named "Forces".

    Mechanics (u-mech): Forces (t-forces), Motion (t-motion)
    Waves (u-waves):    Forces (t-wforces), Sound (t-sound)
    """
    return {
        "units": [
            {"id": "u-mech", "name": "Mechanics", "code": "PHY-M", "aliases": ["Newtonian mechanics"]},
            {"id": "u-waves", "name": "Waves", "code": "PHY-W"},
        ],
        "topics": [
            {"id": "t-forces", "name": "Forces", "unit_id": "u-mech"},
            {"id": "t-motion", "name": "Motion", "unit_id": "u-mech"},
            {"id": "t-wforces", "name": "Forces", "unit_id": "u-waves"},
            {"id": "t-sound", "name": "Sound", "unit_id": "u-waves"},
        ],
        "subtopics": [
            {"id": "s-newton", "name": "Newton's laws", "topic_id": "t-forces"},
            {"id": "s-friction", "name": "Friction", "topic_id": "t-forces"},
            {"id": "s-speed", "name": "Speed", "topic_id": "t-motion"},
            {"id": "s-echo", "name": "Echoes", "topic_id": "t-sound"},
        ],
    }


@pytest.fixture
def curriculum(curriculum_dict) -> CurriculumTables:
    """Curriculum tables built from curriculum_dict."""
    return CurriculumTables.from_dict(curriculum_dict)


@pytest.fixture
def small_curriculum() -> CurriculumTables:
    """Minimal tables built directly from row objects."""
    return CurriculumTables(
        units=(Unit("1", "Biology"),),
        topics=(Topic("10", "Cells", "1"),),
        subtopics=(Subtopic("100", "Cell division", "10"),),
    )


@pytest.fixture
def make_record():
    """Factory for a well-formed question record."""
    def _make(number: int = 1, **overrides) -> dict:
        record = {
            "question_number": number,
            "question_text": "Name the gas produced at the anode.",
            "marks": 1,
            "correct_answers": ["oxygen/O2"],
        }
        record.update(overrides)
        return record
    return _make
