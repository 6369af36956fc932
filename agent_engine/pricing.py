"""Static per-model token prices used for execution cost estimates."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class ModelPricing:
    """USD per token for prompt (input) and completion (output) tokens."""

    input_rate: float
    output_rate: float

    @classmethod
    def per_thousand(cls, input_cost: float, output_cost: float) -> "ModelPricing":
        return cls(input_rate=input_cost / 1000, output_rate=output_cost / 1000)


DEFAULT_PRICING = ModelPricing.per_thousand(0.01, 0.03)


class PriceTable:
    """Read-only mapping of model identifier to pricing.

    Unknown models fall back to ``default`` instead of failing.
    """

    def __init__(
        self,
        prices: Mapping[str, ModelPricing],
        default: ModelPricing = DEFAULT_PRICING,
    ):
        self._prices = MappingProxyType(dict(prices))
        self.default = default

    @property
    def prices(self) -> Mapping[str, ModelPricing]:
        return self._prices

    def pricing_for(self, model: str) -> ModelPricing:
        return self._prices.get(model, self.default)

    def cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        pricing = self.pricing_for(model)
        return prompt_tokens * pricing.input_rate + completion_tokens * pricing.output_rate

    def with_prices(
        self,
        prices: Mapping[str, ModelPricing],
        default: Optional[ModelPricing] = None,
    ) -> "PriceTable":
        return PriceTable({**self._prices, **prices}, default or self.default)


DEFAULT_PRICE_TABLE = PriceTable(
    {
        "gpt-4-turbo-preview": ModelPricing.per_thousand(0.01, 0.03),
        "gpt-4": ModelPricing.per_thousand(0.03, 0.06),
        "gpt-3.5-turbo": ModelPricing.per_thousand(0.0005, 0.0015),
        "claude-3-opus-20240229": ModelPricing.per_thousand(0.015, 0.075),
        "claude-3-sonnet-20240229": ModelPricing.per_thousand(0.003, 0.015),
        "claude-3-haiku-20240307": ModelPricing.per_thousand(0.00025, 0.00125),
    }
)
