from glrules.learning.tracker import CorrectionTracker, aggregate_patterns

__all__ = ["CorrectionTracker", "aggregate_patterns"]
