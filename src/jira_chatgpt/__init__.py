from .config import GatewayConfig
from .contracts import CompletionRequest, CompletionResult
from .gateway import CompletionGateway
from .prompts import Action, PromptPair, build_prompt

__all__ = [
    "Action",
    "CompletionGateway",
    "CompletionRequest",
    "CompletionResult",
    "GatewayConfig",
    "PromptPair",
    "build_prompt",
]
