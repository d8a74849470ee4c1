from datetime import datetime

from glrules.learning.tracker import aggregate_patterns, summarize_by_field_type
from glrules.models import Correction


def correction(original, corrected, created_at, field_type="gl_assignment"):
    return Correction(
        owner_id="owner-1",
        document_id="doc-1",
        field_type=field_type,
        original_value=original,
        corrected_value=corrected,
        created_at=created_at,
    )


def test_patterns_grouped_and_ranked_by_frequency():
    corrections = [
        correction("6000", "6100", datetime(2024, 1, 1)),
        correction("7000", "7100", datetime(2024, 1, 2)),
        correction("6000", "6100", datetime(2024, 3, 1)),
        correction("6000", "6200", datetime(2024, 2, 1)),
    ]

    patterns = aggregate_patterns(corrections)

    assert [(p.original_value, p.corrected_value, p.frequency) for p in patterns][0] == ("6000", "6100", 2)
    assert patterns[0].last_corrected == datetime(2024, 3, 1)
    assert len(patterns) == 3


def test_equal_frequency_most_recent_first():
    corrections = [
        correction("a", "b", datetime(2024, 1, 1)),
        correction("c", "d", datetime(2024, 5, 1)),
    ]
    patterns = aggregate_patterns(corrections)
    assert [p.original_value for p in patterns] == ["c", "a"]


def test_original_values_with_colons_survive():
    patterns = aggregate_patterns([correction("Acme: West", "Acme Corp", datetime(2024, 1, 1))])
    assert patterns[0].to_dict() == {
        "original_value": "Acme: West",
        "corrected_value": "Acme Corp",
        "frequency": 1,
        "last_corrected": "2024-01-01T00:00:00",
    }


def test_summarize_by_field_type():
    corrections = [
        correction("a", "b", None, field_type="vendor_match"),
        correction("a", "b", None, field_type="vendor_match"),
        correction("c", "d", None),
    ]
    assert summarize_by_field_type(corrections) == {"vendor_match": 2, "gl_assignment": 1}
