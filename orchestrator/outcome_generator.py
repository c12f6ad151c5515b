"""
Gerador de outcome: análise determinística da ideia (features do MVP, riscos, monetização, arquitetura e fases)
"""

from pydantic import BaseModel, Field

MVP_TEMPLATES = {
    "default": [
        "App scaffolding and navigation",
        "Core data models",
        "Main screen(s)",
        "Basic CRUD or list/detail flow",
        "Simple styling and layout",
    ],
    "fitness": [
        "Workout logging",
        "Goal tracking",
        "Basic stats display",
        "Simple calendar view",
        "User preferences",
    ],
    "social": [
        "User auth (basic)",
        "Feed/list view",
        "Create post",
        "Profile view",
        "Basic notifications",
    ],
    "ecommerce": [
        "Product list",
        "Product detail",
        "Cart (basic)",
        "Checkout flow",
        "Order confirmation",
    ],
}

# Ordem importa: o primeiro template com palavra encontrada vence
TEMPLATE_KEYWORDS = [
    ("fitness", ("fitness", "workout", "exercise")),
    ("social", ("social", "feed", "post")),
    ("ecommerce", ("shop", "store", "cart")),
]


class RiskItem(BaseModel):
    risk: str
    severity: str
    mitigation: str | None = None


class PhaseEstimate(BaseModel):
    phase: str
    description: str
    estimated_tasks: int
    order: int


class OutcomeResult(BaseModel):
    mvp_features: list[str] = Field(default_factory=list)
    risk_analysis: list[RiskItem] = Field(default_factory=list)
    monetization_suggestions: list[str] = Field(default_factory=list)
    recommended_architecture: list[str] = Field(default_factory=list)
    development_phases: list[PhaseEstimate] = Field(default_factory=list)


def select_template(idea: str) -> str:
    idea_lower = (idea or "").lower()
    for template, keywords in TEMPLATE_KEYWORDS:
        if any(keyword in idea_lower for keyword in keywords):
            return template
    return "default"


def generate_outcome(idea: str) -> OutcomeResult:
    return OutcomeResult(
        mvp_features=list(MVP_TEMPLATES[select_template(idea)]),
        risk_analysis=[
            RiskItem(risk="Scope creep", severity="medium", mitigation="Strict MVP-first, defer non-core features"),
            RiskItem(risk="Third-party API limits", severity="low", mitigation="Use mock data for development"),
            RiskItem(risk="Platform-specific bugs", severity="low", mitigation="Test on both iOS and Android early"),
        ],
        monetization_suggestions=[
            "Freemium: Core free, premium features paid",
            "One-time purchase for full unlock",
            "Subscription for recurring value (e.g. sync, analytics)",
        ],
        recommended_architecture=[
            "Expo + React Native",
            "File-based navigation (Expo Router)",
            "Zustand for state",
            "API layer in src/api",
        ],
        development_phases=[
            PhaseEstimate(
                phase="Phase 1: Foundation", description="Scaffold, nav, core screens", estimated_tasks=3, order=1
            ),
            PhaseEstimate(
                phase="Phase 2: Core Logic", description="Data flow, main features", estimated_tasks=4, order=2
            ),
            PhaseEstimate(
                phase="Phase 3: Polish", description="Styling, edge cases, validation", estimated_tasks=2, order=3
            ),
        ],
    )
