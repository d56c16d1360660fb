"""
Secure logging utilities with PII and credential redaction

Shipping requests carry contact details (email, phone) and provider calls
carry API tokens; neither may reach the logs.
"""
import hashlib
import json
import logging
import re
import time
import uuid
from typing import Any, Dict, List, Optional, Set, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import Request

logger = logging.getLogger(__name__)


class SecureLogger:
    """
    Request/response log formatting with automatic redaction

    Features:
    - Redacts sensitive headers (Shippo tokens, cookies)
    - Redacts sensitive query parameters (Freightos apiKey)
    - Removes email addresses and phone numbers from free text
    - Generates request IDs for tracing
    """

    SENSITIVE_HEADERS: Set[str] = {
        'authorization',
        'proxy-authorization',
        'cookie',
        'set-cookie',
        'x-api-key',
        'api-key',
        'x-forwarded-for',
        'x-real-ip',
    }

    SENSITIVE_PARAMS: Set[str] = {
        'apikey',
        'api_key',
        'token',
        'secret',
        'password',
        'email',
        'phone',
    }

    PII_PATTERNS: List[Tuple[re.Pattern, str]] = [
        (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), '[EMAIL_REDACTED]'),
        # US style phone numbers; 5-digit ZIPs and dimension triples do not match
        (re.compile(r'(?<!\d)(\+?1[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]\d{4}(?!\d)'), '[PHONE_REDACTED]'),
        (re.compile(r'\bshippo_(?:test|live)_[A-Za-z0-9]{16,}'), '[API_KEY_REDACTED]'),
    ]

    @classmethod
    def generate_request_id(cls) -> str:
        """
        Generate unique request ID for tracing
        Format: req_[timestamp]_[random]
        """
        timestamp = int(time.time() * 1000)
        return f"req_{timestamp}_{uuid.uuid4().hex[:8]}"

    @classmethod
    def sanitize_headers(cls, headers: Dict[str, Any]) -> Dict[str, Any]:
        if not headers:
            return {}

        sanitized = {}
        for key, value in headers.items():
            key_lower = key.lower().strip()
            if key_lower in cls.SENSITIVE_HEADERS:
                # Keep the scheme ("ShippoToken", "Bearer") for debugging
                parts = str(value).split(' ', 1)
                if key_lower == 'authorization' and len(parts) == 2:
                    sanitized[key] = f"{parts[0]} [REDACTED]"
                else:
                    sanitized[key] = '[REDACTED]'
            else:
                sanitized[key] = cls.redact_pii(str(value))
        return sanitized

    @classmethod
    def sanitize_params(cls, params: Dict[str, Any]) -> Dict[str, Any]:
        if not params:
            return {}

        sanitized = {}
        for key, value in params.items():
            key_lower = key.lower().strip()
            if any(sensitive in key_lower for sensitive in cls.SENSITIVE_PARAMS):
                sanitized[key] = '[REDACTED]'
            elif isinstance(value, str):
                sanitized[key] = cls.redact_pii(value)
            else:
                sanitized[key] = value
        return sanitized

    @classmethod
    def redact_pii(cls, text: str, max_length: int = 1000) -> str:
        """
        Redact PII patterns from text

        Args:
            text: Text to redact
            max_length: Truncate if longer than this

        Returns:
            Redacted text
        """
        if not text:
            return text

        if len(text) > max_length:
            text = text[:max_length] + '...[TRUNCATED]'

        for pattern, replacement in cls.PII_PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    @classmethod
    def format_request_log(
        cls,
        request: 'Request',
        request_id: str,
        include_headers: bool = False,
    ) -> Dict[str, Any]:
        """Log-safe summary of an incoming API request."""
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": cls.sanitize_params(dict(request.query_params)),
        }

        if request.client:
            # Hash the IP: unique enough for correlating, not identifying
            log_data["client_hash"] = hashlib.sha256(request.client.host.encode()).hexdigest()[:8]

        if include_headers:
            log_data["headers"] = cls.sanitize_headers(dict(request.headers))

        log_data["user_agent"] = request.headers.get("user-agent", "unknown")[:200]
        return log_data

    @classmethod
    def format_response_log(
        cls,
        request_id: str,
        status_code: int,
        duration_ms: float,
    ) -> Dict[str, Any]:
        log_data = {
            "request_id": request_id,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }

        if 200 <= status_code < 300:
            log_data["status_category"] = "success"
        elif 400 <= status_code < 500:
            log_data["status_category"] = "client_error"
        elif 500 <= status_code < 600:
            log_data["status_category"] = "server_error"
        else:
            log_data["status_category"] = "other"
        return log_data

    @classmethod
    def format_error_log(cls, request_id: str, error: Exception) -> Dict[str, Any]:
        return {
            "request_id": request_id,
            "error_type": type(error).__name__,
            "error_message": cls.redact_pii(str(error)),
        }


def log_secure(level: str, message: str, data: Dict[str, Any], request_id: Optional[str] = None):
    """
    Helper for consistent structured logging

    Args:
        level: Log level (info, warning, error)
        message: Log message
        data: Structured data to log
        request_id: Optional request ID for correlation
    """
    if request_id:
        data["request_id"] = request_id

    log_json = json.dumps({"message": message, "data": data}, default=str)

    if level == "info":
        logger.info(log_json)
    elif level == "warning":
        logger.warning(log_json)
    elif level == "error":
        logger.error(log_json)
    else:
        logger.debug(log_json)
