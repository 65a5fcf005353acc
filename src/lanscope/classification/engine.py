"""
ClassificationEngine: turns an advertisement, its records and its vendor into
a display name and an icon.
"""
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

import structlog

from ..models.common import IconTag
from ..models.device import DeviceIdentity, DiscoveredDevice
from .rules import DEFAULT_RULES, Classification, ClassificationContext, ClassificationRule

logger = structlog.get_logger(__name__)

# Consulted only when the rule set ends with IconTag.UNKNOWN, e.g. a model
# based classifier. Returning None keeps the rule-based result.
FallbackClassifier = Callable[[ClassificationContext], Optional[Classification]]


class ClassificationEngine:
    """
    Evaluates an ordered list of rules; the first matching rule wins.

    The engine holds no per-device state, so classifying the same inputs
    always gives the same result.
    """

    def __init__(
        self,
        rules: Optional[Sequence[ClassificationRule]] = None,
        fallback: Optional[FallbackClassifier] = None,
    ):
        self.rules: List[ClassificationRule] = list(rules if rules is not None else DEFAULT_RULES)
        if not self.rules:
            raise ValueError("ClassificationEngine needs at least one rule.")
        self.fallback = fallback
        self.logger = logger.bind(service="ClassificationEngine")

    def classify(
        self,
        identity: DeviceIdentity,
        host_name: Optional[str] = None,
        port: Optional[int] = None,
        addresses: Sequence[str] = (),
        metadata: Optional[Mapping[str, str]] = None,
        hardware_address: Optional[str] = None,
        vendor_name: Optional[str] = None,
    ) -> Classification:
        ctx = ClassificationContext(
            name=identity.name,
            service_type=identity.service_type,
            host_name=host_name,
            port=port,
            addresses=tuple(addresses),
            metadata=dict(metadata or {}),
            hardware_address=hardware_address,
            vendor_name=vendor_name,
        )
        return self.classify_context(ctx)

    def classify_device(self, device: DiscoveredDevice) -> Classification:
        return self.classify(
            device.identity,
            host_name=device.host_name,
            port=device.port,
            addresses=device.addresses,
            metadata=device.metadata,
            hardware_address=device.hardware_address,
            vendor_name=device.vendor_name,
        )

    def classify_context(self, ctx: ClassificationContext) -> Classification:
        rule_name, result = self._evaluate(ctx)
        if result.icon_tag == IconTag.UNKNOWN and self.fallback is not None:
            try:
                alternative = self.fallback(ctx)
            except Exception as e:
                self.logger.warning("Fallback classifier failed; keeping rule result", rule=rule_name, error=str(e))
                alternative = None
            if alternative is not None:
                return alternative
        return result

    def explain(self, ctx: ClassificationContext) -> str:
        """Name of the rule that decides `ctx`."""
        rule_name, _ = self._evaluate(ctx)
        return rule_name

    def _evaluate(self, ctx: ClassificationContext) -> Tuple[str, Classification]:
        for rule in self.rules:
            if rule.predicate(ctx):
                return rule.name, rule.produce(ctx)
        # Custom rule lists may not end with a catch-all.
        return "none", Classification(ctx.host_label, IconTag.UNKNOWN)
