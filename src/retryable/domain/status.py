"""Well-known HTTP status codes that are not part of the official specification.

Official codes come from :class:`http.HTTPStatus`; the constants below cover
vendor-specific codes (Cloudflare, NGINX, AWS ELB, Shopify, ...) that servers
return in practice for rate limiting and upstream failures.
"""

from http import HTTPStatus

# Apache catch-all when ProxyErrorOverride is enabled
STATUS_THIS_IS_FINE = 218

# Laravel: CSRF token missing or expired
STATUS_PAGE_EXPIRED = 419

# Spring: method failure
STATUS_METHOD_FAILURE = 420

# Twitter Search and Trends API v1: client is being rate limited
STATUS_ENHANCE_YOUR_CALM = 420

# Shopify: used instead of 429 when too many URLs are requested
STATUS_REQUEST_HEADER_FIELDS_TOO_LARGE = 430

# IIS
STATUS_LOGIN_TIMEOUT = 440
STATUS_RETRY_WITH = 449

# NGINX: close connection without a response
STATUS_NO_RESPONSE = 444

# AWS Elastic Load Balancing
STATUS_CLIENT_CLOSED_CONNECTION = 460
STATUS_X_FORWARDED_FOR_TOO_LARGE = 463
STATUS_INCOMPATIBLE_PROTOCOL_VERSIONS = 464

# NGINX
STATUS_REQUEST_HEADER_TOO_LARGE = 494
STATUS_SSL_CERTIFICATE_ERROR = 495
STATUS_SSL_CERTIFICATE_REQUIRED = 496
STATUS_HTTP_REQUEST_SENT_TO_HTTPS_PORT = 497
STATUS_CLIENT_CLOSED_REQUEST = 499

# ArcGIS for Server
STATUS_INVALID_TOKEN = 498
STATUS_TOKEN_REQUIRED = 499

# Apache / cPanel: bandwidth limit exceeded
STATUS_BANDWIDTH_LIMIT_EXCEEDED = 509

# Cloudflare
STATUS_WEB_SERVER_RETURNED_AN_UNKNOWN_ERROR = 520
STATUS_WEB_SERVER_IS_DOWN = 521
STATUS_CONNECTION_TIMED_OUT = 522
STATUS_ORIGIN_IS_UNREACHABLE = 523
STATUS_TIMEOUT_OCCURRED = 524
STATUS_SSL_HANDSHAKE_FAILED = 525
STATUS_INVALID_SSL_CERTIFICATE = 526
STATUS_RAILGUN_ERROR = 527
STATUS_CLOUDFLARE_ERROR = 530

# Pantheon
STATUS_SITE_IS_OVERLOADED = 529
STATUS_SITE_IS_FROZEN = 530

# Microsoft HTTP proxies
STATUS_NETWORK_READ_TIMEOUT = 598
STATUS_NETWORK_CONNECT_TIMEOUT = 599


DEFAULT_RETRY_STATUS = frozenset(
    int(code)
    for code in (
        HTTPStatus.REQUEST_TIMEOUT,
        HTTPStatus.CONFLICT,
        STATUS_ENHANCE_YOUR_CALM,
        HTTPStatus.LOCKED,
        HTTPStatus.TOO_EARLY,
        HTTPStatus.TOO_MANY_REQUESTS,
        STATUS_REQUEST_HEADER_FIELDS_TOO_LARGE,
        HTTPStatus.INTERNAL_SERVER_ERROR,
        HTTPStatus.BAD_GATEWAY,
        HTTPStatus.SERVICE_UNAVAILABLE,
        HTTPStatus.GATEWAY_TIMEOUT,
        HTTPStatus.INSUFFICIENT_STORAGE,
        STATUS_BANDWIDTH_LIMIT_EXCEEDED,
        STATUS_WEB_SERVER_RETURNED_AN_UNKNOWN_ERROR,
        STATUS_WEB_SERVER_IS_DOWN,
        STATUS_CONNECTION_TIMED_OUT,
        STATUS_ORIGIN_IS_UNREACHABLE,
        STATUS_TIMEOUT_OCCURRED,
        STATUS_RAILGUN_ERROR,
        STATUS_SITE_IS_OVERLOADED,
        STATUS_CLOUDFLARE_ERROR,
        STATUS_NETWORK_READ_TIMEOUT,
        STATUS_NETWORK_CONNECT_TIMEOUT,
    )
)
"""Status codes retried by default."""
