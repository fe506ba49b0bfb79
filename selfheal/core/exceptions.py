class ResolutionError(RuntimeError):
    """Base class for locator resolution failures."""


class InvalidQuerySyntax(ResolutionError):
    """Raised when the page engine cannot parse a locator query."""


class ElementNotFoundError(ResolutionError):
    """Raised when every resolution strategy missed."""

    def __init__(self, locator_id: str, visited: list[str] | None = None) -> None:
        self.locator_id = locator_id
        self.visited = list(visited or [])
        trail = " -> ".join(self.visited) or "no strategies"
        super().__init__(f"No element found for locator '{locator_id}' ({trail})")


class AmbiguousMatchError(ResolutionError):
    """Raised in strict mode when the primary query matches several elements."""

    def __init__(self, query: str, count: int) -> None:
        self.query = query
        self.count = count
        super().__init__(f"Query '{query}' matched {count} elements")


class PersistenceError(ResolutionError):
    """Raised when the healing ledger cannot be written or read."""


class SuggestionError(ResolutionError):
    """Raised when the AI suggestion collaborator fails."""


class SuggestionTimeout(SuggestionError):
    """Raised when the AI suggestion collaborator exceeds its time budget."""


class SuggestionValidationError(SuggestionError):
    """Raised when an LLM returns an unusable suggestion."""
