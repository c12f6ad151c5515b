"""
Constantes do Agent Bridge - Valores padrão para configurações
"""

# === CICLO DE VIDA DO PROJETO ===
DEFAULT_MAX_ITERATIONS = 10
PROJECT_ID_PREFIX = "proj_"

# === DECISION ENGINE ===
MAX_MVP_TASKS = 8
MAX_TASK_PROMPT_LENGTH = 1500
COMPLEXITY_THRESHOLD = 0.75

# Rigor por modo de autonomia (modos mais autônomos são mais rígidos)
SCOPE_STRICTNESS = {
    "assist": 0.5,
    "builder": 0.7,
    "autopilot": 0.9,
}

MVP_CORE_KEYWORDS = [
    "setup",
    "scaffold",
    "navigation",
    "home",
    "list",
    "detail",
    "basic",
    "initial",
    "core",
    "main screen",
]

MVP_DEFER_KEYWORDS = [
    "analytics",
    "settings",
    "profile",
    "onboarding",
    "tutorial",
    "advanced",
    "optimization",
    "polish",
]

COMPLEXITY_RISK_KEYWORDS = [
    "authentication",
    "payment",
    "real-time",
    "websocket",
    "database migration",
    "third-party api",
    "oauth",
    "push notification",
    "background",
    "multi-tenant",
]

COMPLEXITY_VALUE_KEYWORDS = [
    "core",
    "main",
    "basic",
    "simple",
    "list",
    "detail",
    "form",
    "navigation",
    "home",
    "screen",
]

RISK_KEYWORD_WEIGHT = 0.2
VALUE_KEYWORD_WEIGHT = 0.15
COMPLEXITY_BASELINE = 0.3

# === FAILURE RECOVERY ===
MAX_ATTEMPTS_BY_CATEGORY = {
    "dependency": 2,
    "syntax": 3,
    "architecture": 2,
    "environment": 1,
    "unknown": 2,
}

# === VERIFICAÇÃO ===
DEFAULT_VERIFICATION_TIMEOUT = 120  # segundos
LINT_TIMEOUT_CAP = 60
DOCTOR_TIMEOUT_CAP = 30
MAX_EXTRACTED_ERRORS = 20
FALLBACK_ERROR_LINES = 10
MAX_ERROR_LINE_LENGTH = 500
MAX_DOCTOR_ERRORS = 5
PROJECT_MANIFEST = "package.json"
APP_MANIFEST = "app.json"

# === GIT ===
GIT_PULL_TIMEOUT = 30
GIT_CLONE_TIMEOUT = 60

# === RELEASE ===
RELEASE_TIMEOUT = 600  # 10 minutos
RELEASE_COMMAND = ["eas", "build", "--platform", "ios", "--profile", "production", "--auto-submit", "--non-interactive"]

# === CONFIGURAÇÕES DE RETRY E TIMEOUT ===
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.0  # segundos
DEFAULT_RETRY_BACKOFF_FACTOR = 2
MAX_RETRY_DELAY = 30  # segundos
HTTP_REQUEST_TIMEOUT = 30

# === AGENTES EXTERNOS ===
DEFAULT_CODING_AGENT_API_BASE = "https://api.cursor.com/v0"
DEFAULT_PLANNING_GATEWAY_URL = "http://127.0.0.1:18789"
DEFAULT_PLANNING_AGENT_ID = "main"
PLANNING_MESSAGE_SENDER = "Orchestrator"
PLAN_REQUEST_TIMEOUT_SECONDS = 180
MIN_PLANNING_TOKEN_LENGTH = 16

# === MEMÓRIA DO PROJETO ===
MEMORY_QUERY_LIMIT = 100
MEMORY_SUMMARY_LIMIT = 200
MAX_SUMMARY_DECISIONS = 20
MAX_SUMMARY_FAILED_FIXES = 10
MAX_SUMMARY_PROMPTS = 10
MAX_SUMMARY_TRADEOFFS = 10

# === PALAVRAS DE APROVAÇÃO (mensagens livres do planning agent) ===
APPROVAL_KEYWORDS = ["approve", "onay", "onayla", "onaylıyorum", "tamam", "kabul", "aprovar", "aprovado"]
