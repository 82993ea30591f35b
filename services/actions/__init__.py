from services.actions.executor import (
    ActionExecutor,
    TaggedActionExecutor,
    apply_placeholders,
    parse_action,
)

__all__ = ["ActionExecutor", "TaggedActionExecutor", "apply_placeholders", "parse_action"]
