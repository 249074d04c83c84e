"""Default constants and configuration values used across the library."""

DEFAULT_MODEL = "sonnet"
DEFAULT_MODEL_ENV_VAR = "DEFERRED_AI_MODEL"

DEFAULT_CONTEXT_WINDOW = 3900
DEFAULT_NUM_OUTPUTS = 256

PLACEHOLDER_PATTERN = r"\$\{[^{}]+\}"
