from glrules.ai.client import SuggestionClient, SuggestionAPIError

__all__ = ["SuggestionClient", "SuggestionAPIError"]
