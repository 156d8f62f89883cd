"""Application state container and actions"""

from src.state.app_state import AppState, InterestOutcome

__all__ = ["AppState", "InterestOutcome"]
