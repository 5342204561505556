"""AI Agents package."""

from spendsmart.agents.ai_agents import (
    AdvisorAgent,
    AdvisorError,
    AgentError,
    IngestionError,
    ReceiptIngestionAgent,
    UploadRejectedError,
    normalize_extracted,
    parse_extraction_response,
    summarize_transactions,
)

__all__ = [
    "AdvisorAgent",
    "AdvisorError",
    "AgentError",
    "IngestionError",
    "ReceiptIngestionAgent",
    "UploadRejectedError",
    "normalize_extracted",
    "parse_extraction_response",
    "summarize_transactions",
]
