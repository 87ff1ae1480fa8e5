"""
Basic client example using c_http_client.

This example demonstrates how to send requests with the Client on
both transports and how the three error kinds are reported.
"""

import logging

from c_http_client import (
    Client,
    ClientError,
    HTTP11Transport,
    NetworkError,
    Option,
    Request,
    RequestError,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def simple_get_request(client: Client) -> None:
    """Demonstrate a simple GET request."""
    logger.info("Making simple GET request...")

    request = Request.create("GET", "http://httpbin.org/get")
    response = client.send_request(request)

    logger.info(f"Response status: {response.status_code} {response.reason_phrase}")
    logger.info(f"Content-Type: {response.get_header_line('Content-Type')}")
    logger.info(f"Response body length: {len(response.content)} bytes")


def post_request_with_body(client: Client) -> None:
    """Demonstrate a POST request with body."""
    logger.info("Making POST request with body...")

    request = Request.create(
        "POST",
        "http://httpbin.org/post",
        headers={"Content-Type": "application/json"},
        body=b'{"message": "Hello, World!"}',
    )
    response = client.send_request(request)

    logger.info(f"Response status: {response.status_code}")
    logger.info(f"Response body: {response.content.decode('utf-8', 'replace')[:200]}")


def redirect_request(client: Client) -> None:
    """Demonstrate following redirects through an override option."""
    logger.info("Following redirects...")

    client.set_option(Option.FOLLOWLOCATION, True).set_option(Option.MAXREDIRS, 5)
    response = client.send_request(Request.create("GET", "http://httpbin.org/redirect/2"))

    logger.info(f"Final status: {response.status_code}")


def error_handling(client: Client) -> None:
    """Demonstrate the error kinds raised by send_request."""
    logger.info("Demonstrating error handling...")

    try:
        client.send_request(Request.create("GET", "/no/host/here"))
    except RequestError as exc:
        logger.info(f"RequestError: {exc.message}")

    try:
        client.send_request(Request.create("GET", "http://nonexistent.invalid/"))
    except NetworkError as exc:
        logger.info(f"NetworkError [{exc.code}]: {exc.message}")

    try:
        Client(transport=client.transport, allow_url_open=False).send_request(
            Request.create("GET", "http://httpbin.org/get")
        )
    except ClientError as exc:
        logger.info(f"ClientError: {exc.message}")


def main() -> None:
    """Run all examples on both transports."""
    logger.info("Starting c_http_client examples...")

    for name, client in (
        ("libcurl", Client(options={Option.TIMEOUT: 10})),
        ("h11", Client(transport=HTTP11Transport(), options={Option.TIMEOUT: 10})),
    ):
        logger.info(f"--- {name} transport ---")
        try:
            simple_get_request(client)
            post_request_with_body(client)
            redirect_request(client)
            error_handling(client)
        except NetworkError as exc:
            logger.error(f"Example failed: {exc}")

    logger.info("All examples completed!")


if __name__ == "__main__":
    main()
