"""
Centralized Help Text Constants

This module provides all CLI help text constants for commands and options,
ensuring consistency across subcommands and enabling easy maintenance.
"""

# Exit codes for different error types
class ExitCodes:
    SUCCESS = 0
    GENERAL_ERROR = 1
    MISSING_REQUIRED_OPTION = 2
    INVALID_CONFIGURATION = 3
    AUTHENTICATION_ERROR = 5
    NETWORK_ERROR = 8


# Map AnalysisError kinds to exit codes
ERROR_EXIT_CODES = {
    "AuthenticationError": ExitCodes.AUTHENTICATION_ERROR,
    "NetworkError": ExitCodes.NETWORK_ERROR,
    "TimeoutError": ExitCodes.NETWORK_ERROR,
    "DeadlineExceededError": ExitCodes.NETWORK_ERROR,
}

# Command help texts
ANALYZE_HELP = "Analyze a prompt with the configured LLM backend and print the result as JSON."
RESEARCH_HELP = "Collect search suggestions for a keyword and analyze them for unmet needs."
STATS_HELP = "Show the effective LLM configuration (secrets masked)."

# Option help texts
ANALYZE_TYPE_HELP = "Analysis type label used in logs and feedback (e.g. keyword_analysis)."

ANALYZE_FORMAT_HELP = (
    "Desired response format:\n"
    "  json: Parsed JSON object (strict by default)\n"
    "  text: Plain text, returned as {\"content\": ...}\n"
    "  markdown: Markdown text, returned as {\"content\": ...}"
)

ANALYZE_STRICT_HELP = (
    "Require a response that parses as JSON, re-asking the model when it does not. "
    "Defaults to on for --format json."
)

MODEL_HELP = "Pin a model identifier and skip automatic tier selection."
NO_CACHE_HELP = "Bypass the response cache for this call."
STREAM_HELP = "Print the response in chunks as it is delivered."
MOCK_HELP = "Serve canned responses without calling an upstream backend (same as MOCK_LLM=true)."

CONFIG_HELP = (
    "Path to configuration file (.yaml). If not specified, uses "
    "./.keyword-insight/config.yaml when present, then environment variables and defaults."
)

LOG_LEVEL_HELP = "Logging level for detailed output. Use DEBUG for troubleshooting."
LOG_FILE_HELP = "Also write logs to this file (rotated at 10MB)."

MAX_SUGGESTIONS_HELP = "Maximum number of search suggestions fed into the analysis."
PROGRESS_HELP = "Show a progress bar on stderr while the analysis runs."

# Error messages
CONFIGURATION_ERROR_HINT = (
    "Setup instructions:\n"
    "  - Set LLM_API_KEY (or OPENAI_API_KEY / ANTHROPIC_API_KEY / DASHSCOPE_API_KEY)\n"
    "  - Set LLM_MODEL to choose the backend (gpt-*, claude-*, qwen-*)\n"
    "  - Or run with --mock for offline canned responses"
)
