from .prompt_state import PromptStateStore

__all__ = ["PromptStateStore"]
