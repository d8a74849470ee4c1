from glrules.rules.engine import RulesEngine, evaluate, check_rule
from glrules.rules.store import RuleStore, ApplicationLog

__all__ = ["RulesEngine", "RuleStore", "ApplicationLog", "evaluate", "check_rule"]
