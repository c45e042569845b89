"""
Decorators and HTTP request utilities.
"""

import functools
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple, Type

import requests

from .logging_config import LOGGER_NAME


def retry_request(
    logger: logging.Logger,
    max_retries: int = 3,
    delay: float = 2,
    backoff: float = 2,
    retry_on: Tuple[Type[Exception], ...] = (requests.RequestException, ValueError),
) -> Callable:
    """
    Decorator that retries an HTTP call on network, status and body errors.

    The wait starts at ``delay`` seconds and is multiplied by ``backoff`` after each
    failed attempt. Exceptions outside ``retry_on`` propagate immediately.

    Args:
        logger: Logger instance for retry logging.
        max_retries: Maximum number of attempts.
        delay: Initial delay between attempts in seconds.
        backoff: Delay multiplier per attempt.
        retry_on: Exception types that trigger a retry.

    Returns:
        Decorated function with retry logic. Returns None once every attempt failed.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            wait = delay
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_retries:
                        logger.error("%s failed after %s attempts: %s", func.__name__, max_retries, e)
                        return None
                    logger.warning(
                        "%s failed (attempt %s/%s), retrying in %ss: %s", func.__name__, attempt, max_retries, wait, e
                    )
                    time.sleep(wait)
                    wait *= backoff
            return None

        return wrapper

    return decorator


def fetch_json(url: str, headers: Dict[str, str], params: Dict[str, Any], timeout: float = 10) -> Dict[str, Any]:
    """
    Issue a single GET request and return the decoded JSON body.

    Raises:
        requests.RequestException: On network errors and non-2xx responses.
        ValueError: If the body is not valid JSON.
    """
    response = requests.get(url, headers=headers, params=params, timeout=timeout)
    response.raise_for_status()
    return response.json()


@retry_request(logging.getLogger(LOGGER_NAME))
def make_api_request(url: str, headers: Dict[str, str], params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Make an API request with retry functionality.

    Args:
        url: The URL for the API request.
        headers: Headers for the request.
        params: Parameters for the request.

    Returns:
        JSON response if successful, None otherwise.
    """
    return fetch_json(url, headers, params)


@retry_request(logging.getLogger(LOGGER_NAME))
def make_graphql_request(url: str, query: str, timeout: float = 10) -> Optional[Dict[str, Any]]:
    """
    POST a GraphQL query with retry functionality.

    Args:
        url: The GraphQL endpoint.
        query: The query document.
        timeout: Request timeout in seconds.

    Returns:
        The ``data`` member of the response if successful, None otherwise.
    """
    response = requests.post(url, json={"query": query}, timeout=timeout)
    response.raise_for_status()
    body = response.json()
    if body.get("errors"):
        raise requests.RequestException(f"GraphQL errors: {body['errors']}")
    return body.get("data")
