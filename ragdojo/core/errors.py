"""Error taxonomy for the retrieval pipeline."""


class RagError(Exception):
    """Base class for errors surfaced to callers."""


class NotFoundError(RagError):
    """Unknown document or collection id."""


class InvalidInputError(RagError):
    """Request rejected before entering the pipeline."""


class UpstreamUnavailableError(RagError):
    """Embedding, generation or storage call failed.

    Fatal for the enclosing request. The original provider exception
    is kept as ``__cause__`` for operators.
    """

    def __init__(self, gateway: str, detail: str = ""):
        self.gateway = gateway
        self.detail = detail
        message = f"{gateway} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
