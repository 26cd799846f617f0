from .service import AIService, CallOutcome

__all__ = ["AIService", "CallOutcome"]
