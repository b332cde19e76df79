"""API-related constants."""

# HTTP headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Content API routing
CONTENT_API_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]
PREFLIGHT_MAX_AGE = "86400"  # 24 hours in seconds
INVALID_JSON_MESSAGE = "Invalid JSON in request body"

# Security
DEFAULT_CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'none'",
        "img-src 'self' data:",
        "base-uri 'none'",
        "form-action 'none'",
        "frame-ancestors 'none'",
    ]
)
DEFAULT_PERMISSIONS_POLICY = ", ".join(
    [
        "camera=()",
        "microphone=()",
        "geolocation=()",
        "payment=()",
        "usb=()",
        "magnetometer=()",
        "gyroscope=()",
        "accelerometer=()",
    ]
)
