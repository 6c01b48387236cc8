from __future__ import annotations

from prguard_core.errors import InvalidArgumentError
from prguard_core.models import TokenUsage
from prguard_core.providers.base import BaseValidator, ModelReply


class AnthropicValidator(BaseValidator):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None):
        if not api_key or not api_key.strip():
            raise InvalidArgumentError("API key is required")
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. " "Install it with: pip install anthropic"
            )
        self.client = Anthropic(api_key=api_key)
        self.model = model or self.MODEL

    def _call_api(self, system_prompt: str, user_prompt: str) -> ModelReply:
        # SDK imports stay local so this module imports without anthropic installed.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]

        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "input_tokens", None) or 0
        completion_tokens = getattr(usage, "output_tokens", None) or 0
        return ModelReply(
            text="".join(text_blocks).strip(),
            token_usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )
