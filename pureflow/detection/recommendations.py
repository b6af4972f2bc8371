"""
Recommendation engine for water-quality alerts.

This module maps an alert condition (parameter, severity, direction,
deviation, value) to an ordered list of remediation steps, most drastic
action first. Each supported parameter has its own rule table; anything
else falls back to a generic template.

Key Features:
    - Deterministic: identical inputs always give the identical list
    - Rule tables for pH, temperature, turbidity, salinity, TDS and rain
    - Multi-parameter and trend-based advice
    - Priority and urgency assessment

Example:
    >>> engine = RecommendationEngine()
    >>> engine.generate_recommendations("pH", "critical", "high", 25.0, 9.9)[0]
    'URGENT: Add pH reducer immediately (sodium bisulfate or CO2)'
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog
from pydantic import BaseModel

from pureflow.models.alerts import AlertSeverity, ThresholdEvaluation

logger = structlog.get_logger(__name__)


RuleFunction = Callable[[str, str, float, Optional[float]], List[str]]

# Parameters covered by a dedicated rule table
SUPPORTED_PARAMETERS = ("ph", "temperature", "turbidity", "salinity", "tds", "rain")

# Trend change (percent) below which a parameter counts as stable
STABLE_CHANGE_PERCENT = 5.0


class RecommendationPriority(BaseModel):
    """
    Priority and urgency of acting on a set of recommendations.

    Attributes:
        priority: high, medium or low.
        urgency: immediate, soon or routine.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    priority: AlertSeverity
    urgency: str


def _text(value: Any) -> str:
    """Lower-case text of an enum member or plain string."""
    return str(getattr(value, "value", value) or "").lower()


class RecommendationEngine:
    """
    Maps alert conditions to ordered remediation steps.

    Dispatch is by lower-cased parameter name. Within each rule table the
    branching is severity (critical or not), then direction (high or low),
    then deviation bucket (>20%, >10%, else) where the table has buckets.

    The engine holds no state besides its rule table, so one instance can
    be shared freely.

    Example:
        >>> engine = RecommendationEngine()
        >>> engine.generate_recommendations("nitrate", "warning", "high", 12.0, 55.0)[0]
        'Warning Nitrate levels detected'
    """

    def __init__(self) -> None:
        self._rules: Dict[str, RuleFunction] = {
            "ph": self._ph_rules,
            "temperature": self._temperature_rules,
            "turbidity": self._turbidity_rules,
            "salinity": self._salinity_rules,
            "tds": self._tds_rules,
            "rain": self._rain_rules,
        }

    def generate_recommendations(
        self,
        parameter: str,
        severity: Any,
        direction: Any,
        deviation: float = 0.0,
        value: Optional[float] = None,
    ) -> List[str]:
        """
        Generate ordered recommendations for an alert condition.

        Args:
            parameter: Parameter name (any case).
            severity: critical, warning, normal or info (enum or string).
            direction: high, low or normal (enum or string).
            deviation: Deviation from the ideal edge, in percent.
            value: Current value, if known.

        Returns:
            List[str]: Recommendations, most drastic first.

        Example:
            >>> engine.generate_recommendations("temperature", "warning", "low", 8.0, 23.5)[0]
            'Check and adjust heater settings'
        """
        severity_text = _text(severity)
        direction_text = _text(direction)

        try:
            rule = self._rules.get(parameter.lower())
            if rule is None:
                return self._default_rules(parameter, severity_text)
            return rule(severity_text, direction_text, deviation, value)
        except Exception as e:
            logger.error(
                "recommendation_generation_failed",
                parameter=parameter,
                severity=severity_text,
                error=str(e),
            )
            return [f"Monitor {parameter} levels closely and consult water quality guidelines."]

    def generate_multi_parameter_recommendations(
        self,
        parameters: Sequence[str],
        evaluations: Sequence[ThresholdEvaluation],
    ) -> List[str]:
        """
        Generate advice when several parameters are out of range at once.

        Args:
            parameters: Affected parameter names, most important first.
            evaluations: Matching threshold evaluations.

        Returns:
            List[str]: Recommendations, empty for fewer than two parameters.
        """
        if len(parameters) <= 1:
            return []

        focus = ", ".join(parameters[:3])
        critical_count = sum(1 for e in evaluations if _text(e.severity) == "critical")

        if critical_count > 0:
            return [
                "MULTIPLE CRITICAL PARAMETERS: Immediate intervention required",
                f"Affected parameters: {focus}",
                "Consider emergency water change with pre-treated water",
                "Monitor aquatic life closely and prepare quarantine if needed",
            ]
        return [
            "Multiple parameters outside optimal ranges detected",
            f"Focus on: {focus}",
            "Schedule corrective actions within next 24 hours",
        ]

    def generate_trend_recommendations(
        self,
        parameter: str,
        trend: Any,
        change_percent: float,
    ) -> List[str]:
        """
        Generate advice from a parameter's recent trend.

        Args:
            parameter: Parameter name.
            trend: increasing, decreasing or stable (enum or string).
            change_percent: Relative change over the analysed window.

        Returns:
            List[str]: Trend advice.
        """
        if abs(change_percent) < STABLE_CHANGE_PERCENT:
            return ["Parameter trending stable - maintain current conditions"]

        name = parameter[:1].upper() + parameter[1:]
        key = parameter.lower()
        change = round(abs(change_percent))
        trend_text = _text(trend)
        recommendations: List[str] = []

        if trend_text == "increasing":
            recommendations.append(f"{name} trending upward ({change}% increase)")
            follow_up = {
                "ph": "Monitor for potential alkalinity depletion",
                "temperature": "Check cooling system efficiency",
                "turbidity": "Inspect filtration system capacity",
            }.get(key)
        elif trend_text == "decreasing":
            recommendations.append(f"{name} trending downward ({change}% decrease)")
            follow_up = {
                "ph": "Monitor for excessive CO2 or low alkalinity",
                "temperature": "Verify heating system functionality",
            }.get(key)
        else:
            follow_up = None

        if follow_up:
            recommendations.append(follow_up)
        return recommendations

    def assess_priority(
        self,
        severity: Any,
        deviation: float,
        trend: Any = None,
    ) -> RecommendationPriority:
        """
        Assess how urgently recommendations should be acted on.

        Args:
            severity: critical, warning or normal.
            deviation: Deviation in percent.
            trend: Optional trend direction; a fast increase forces immediate.

        Returns:
            RecommendationPriority: Priority and urgency.
        """
        severity_text = _text(severity)
        priority = AlertSeverity.LOW
        urgency = "routine"

        if severity_text == "critical":
            priority, urgency = AlertSeverity.HIGH, "immediate"
        elif severity_text == "warning":
            priority, urgency = AlertSeverity.HIGH, "soon"
        elif deviation > 15 or abs(deviation) < 5:
            priority = AlertSeverity.MEDIUM

        if _text(trend) == "increasing" and deviation > 20:
            priority, urgency = AlertSeverity.HIGH, "immediate"

        return RecommendationPriority(priority=priority, urgency=urgency)

    def supported_parameters(self) -> List[str]:
        """Parameter names that have a dedicated rule table."""
        return list(self._rules)

    def validate_templates(self) -> bool:
        """Check that every expected parameter has a rule table."""
        missing = [p for p in SUPPORTED_PARAMETERS if p not in self._rules]
        if missing:
            logger.error("recommendation_templates_missing", parameters=missing)
            return False
        return True

    # =========================================================================
    # RULE TABLES
    # =========================================================================

    def _ph_rules(self, severity: str, direction: str, deviation: float, value: Optional[float]) -> List[str]:
        critical = severity == "critical"

        if direction == "high":
            if not critical:
                return [
                    "Add pH reducer (sodium bisulfate) gradually",
                    "Check CO2 injection and diffuser for proper aeration",
                    "Monitor pH trend over next 4-6 hours",
                    "Consider water change to stabilize alkalinity",
                ]
            if deviation > 20:
                return [
                    "URGENT: Add pH reducer immediately (sodium bisulfate or CO2)",
                    "Stop all feeding and reduce aeration temporarily",
                    "Test total alkalinity - may need to reduce carbonate hardness",
                    "Monitor for fish stress and prepare emergency water change",
                ]
            if deviation > 10:
                return [
                    "Add pH reducer (sodium bisulfate) gradually over 1-2 hours",
                    "Reduce feeding by 50% and monitor fish behavior",
                    "Check CO2 injection system if using pressurized CO2",
                    "Test alkalinity levels and adjust buffer if needed",
                ]
            return [
                "Add pH reducer (sodium bisulfate) slowly",
                "Verify CO2 injection system is functioning properly",
                "Monitor rate of pH change - avoid rapid drops",
            ]

        if direction == "low":
            if not critical:
                return [
                    "Add pH increaser (baking soda) gradually",
                    "Check for excessive CO2 or low alkalinity",
                    "Monitor pH stability over several hours",
                    "Consider adding crushed coral or aragonite to substrate",
                ]
            if deviation > 20:
                return [
                    "URGENT: Add pH increaser immediately (baking soda or crushed coral)",
                    "Increase aeration to release CO2 from water",
                    "Test for ammonia or nitrite toxicity",
                    "Prepare emergency water change with buffered water",
                ]
            if deviation > 10:
                return [
                    "Add pH increaser (baking soda) gradually over 1-2 hours",
                    "Increase surface agitation and air flow",
                    "Test alkalinity - add buffer if low",
                    "Monitor for rapid pH swings indicating system instability",
                ]
            return [
                "Add pH increaser (baking soda) slowly",
                "Increase aeration and water movement",
                "Test total alkalinity and adjust if below 100ppm",
            ]

        return ["Monitor pH levels and maintain stability"]

    def _temperature_rules(self, severity: str, direction: str, deviation: float, value: Optional[float]) -> List[str]:
        critical = severity == "critical"

        if direction == "high":
            if critical:
                return [
                    "Activate cooling system immediately (chillers/fans)",
                    "Increase aeration to improve oxygen levels",
                    "Reduce feeding by 50-70% to lower metabolic heat",
                    "Test dissolved oxygen levels - add oxygen if low",
                    "Prepare cooler water for gradual mixing if needed",
                ]
            return [
                "Check cooling equipment and water flow",
                "Increase water circulation and surface agitation",
                "Reduce feeding schedule temporarily",
                "Monitor temperature trend over next few hours",
                "Ensure adequate shade/lighting control",
            ]

        if direction == "low":
            if critical:
                return [
                    "Activate heating system immediately",
                    "Check heater functionality and thermostat settings",
                    "Insulate tank to prevent heat loss",
                    "Monitor fish for signs of temperature stress",
                    "Gradually warm water using heater or warm water additions",
                ]
            return [
                "Check and adjust heater settings",
                "Improve tank insulation and reduce drafts",
                "Monitor temperature stability over time",
                "Consider backup heating source if temperature fluctuates",
            ]

        return ["Maintain stable temperature conditions"]

    def _turbidity_rules(self, severity: str, direction: str, deviation: float, value: Optional[float]) -> List[str]:
        if direction == "high":
            if severity == "critical" or deviation > 50:
                return [
                    "Backwash or clean filters immediately",
                    "Check coagulation/flocculation processes",
                    "Inspect for sediment sources or recent disturbances",
                    "Reduce water flow to allow settling if appropriate",
                    "Test filter pressure and media condition",
                ]
            if severity == "warning" or deviation > 10:
                return [
                    "Schedule filter cleaning within 24 hours",
                    "Monitor turbidity trend and particulate sources",
                    "Check coagulation chemical dosing",
                    "Inspect intake screens and pre-filters",
                    "Consider sedimentation basin cleaning",
                ]
            return [
                "Monitor turbidity levels closely",
                "Check for seasonal or weather-related causes",
                "Verify filtration system performance",
                "Schedule routine maintenance if trends continue",
            ]

        if direction == "low":
            return [
                "Low turbidity noted - generally beneficial",
                "Monitor for system changes that might affect water clarity",
                "Ensure adequate disinfection if water becomes too clear",
            ]

        return ["Monitor water clarity and filtration performance"]

    def _salinity_rules(self, severity: str, direction: str, deviation: float, value: Optional[float]) -> List[str]:
        critical = severity == "critical"

        if direction == "high":
            if critical:
                return [
                    "Add fresh water gradually to reduce salinity",
                    "Check evaporation rates and top-off procedures",
                    "Verify salt dosing pumps and concentration",
                    "Monitor for osmotic stress in aquatic life",
                    "Test specific gravity and TDS correlation",
                ]
            return [
                "Reduce salt additions or increase water changes",
                "Monitor evaporation rates vs. makeup water",
                "Check for brine concentration in dosing system",
                "Verify salinity meter calibration",
            ]

        if direction == "low":
            if critical:
                return [
                    "Add salt or brine solution to increase salinity",
                    "Check for excessive freshwater dilution",
                    "Verify salt storage and mixing procedures",
                    "Monitor for osmotic stress during adjustment",
                ]
            return [
                "Adjust salt dosing to maintain target salinity",
                "Check for leaks or excessive water changes",
                "Monitor specific gravity trends",
                "Verify salt quality and purity",
            ]

        return ["Monitor salinity levels and maintain stability"]

    def _tds_rules(self, severity: str, direction: str, deviation: float, value: Optional[float]) -> List[str]:
        if direction == "high":
            if severity == "critical":
                return [
                    "Perform water change to reduce total dissolved solids",
                    "Check for ion buildup from evaporation",
                    "Verify reverse osmosis or filtration performance",
                    "Monitor membrane or filter element condition",
                ]
            return [
                "Increase water change frequency",
                "Monitor TDS trend and identify source of buildup",
                "Check reverse osmosis system performance",
                "Verify pre-filter and membrane condition",
            ]

        if direction == "low":
            return [
                "Low TDS noted - may indicate excessive dilution",
                "Monitor for system leaks or excessive water changes",
                "Verify source water quality if using RO water",
            ]

        return ["Monitor TDS levels and water quality parameters"]

    def _rain_rules(self, severity: str, direction: str, deviation: float, value: Optional[float]) -> List[str]:
        return [
            "Cover open tanks or ponds to limit rainwater inflow",
            "Increase monitoring frequency - rain dilutes salinity and shifts pH",
            "Check drainage and overflow outlets",
            "Recheck turbidity once the rain stops",
        ]

    def _default_rules(self, parameter: str, severity: str) -> List[str]:
        name = parameter[:1].upper() + parameter[1:]
        level = severity[:1].upper() + severity[1:]
        lowered = name.lower()
        return [
            f"{level} {name} levels detected",
            f"Monitor {lowered} levels closely",
            f"Check equipment and processes related to {lowered}",
            "Document readings and trends for analysis",
        ]


def create_recommendation_engine() -> RecommendationEngine:
    """
    Factory function to create a RecommendationEngine.

    Returns:
        RecommendationEngine: A new engine instance.
    """
    return RecommendationEngine()
