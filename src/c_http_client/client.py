"""
HTTP client for c_http_client.

``Client.send_request`` runs one request/response cycle: it checks the
preconditions, translates the request into transport options, performs
the exchange with a ``ResponseAssembler`` as header callback, and
classifies every failure as a ClientError, RequestError or
NetworkError.
"""

import logging
import time
from typing import Any, Dict, Mapping, Optional, Type, Union

from .assembler import AssemblerState, ResponseAssembler
from .exceptions import ClientError, NetworkError, RequestError
from .http_primitives import BaseResponseFactory, Request, Response
from .options import Option, OptionTranslator, TransportOptions
from .transport.base import ErrorCode, Transport
from .transport.curl import CurlTransport

logger = logging.getLogger(__name__)

ResponseClass = Union[Type[Response], Type[BaseResponseFactory], BaseResponseFactory]
OptionKey = Union[Option, str, int]


class Client:
    """
    Synchronous HTTP client.

    Each ``send_request`` call opens its own transport handle and its
    own response assembler, so a client holds no per-request state and
    can be shared between threads as long as its options are not being
    changed concurrently.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        response_class: ResponseClass = Response,
        options: Optional[Mapping[OptionKey, Any]] = None,
        allow_url_open: bool = True,
        translator: Optional[OptionTranslator] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            transport: Transport performing the exchange (libcurl by default)
            response_class: Response subclass, response factory class or
                            factory instance producing the initial response
            options: Transport options that override translated ones
            allow_url_open: When False, every request fails with ClientError
            translator: OptionTranslator building the option set
        """
        self.transport = transport if transport is not None else CurlTransport()
        self.allow_url_open = allow_url_open
        self.translator = translator or OptionTranslator()
        self._options: Dict[OptionKey, Any] = {}
        self._response_class: ResponseClass = Response

        self.set_response_class(response_class)
        if options:
            self.set_options(options)

    def set_response_class(self, response_class: ResponseClass) -> "Client":
        """
        Set what produces the initial response of every request.

        Raises:
            TypeError: If ``response_class`` is neither a Response subclass,
                       a BaseResponseFactory subclass nor a factory instance
        """
        if isinstance(response_class, BaseResponseFactory):
            self._response_class = response_class
            return self

        if not isinstance(response_class, type) or not issubclass(
            response_class, (Response, BaseResponseFactory)
        ):
            raise TypeError(
                f"The provided response class [{response_class!r}] is not a subclass of "
                f"{Response.__name__} or {BaseResponseFactory.__name__}."
            )

        self._response_class = response_class
        return self

    @property
    def response_class(self) -> ResponseClass:
        return self._response_class

    def set_option(self, option: OptionKey, value: Any) -> "Client":
        """Set a transport option that overrides the translated value."""
        self._options[Option.normalize(option)] = value
        return self

    def set_options(self, options: Mapping[OptionKey, Any]) -> "Client":
        """Set several transport options; see ``set_option``."""
        for option, value in options.items():
            self.set_option(option, value)
        return self

    @property
    def options(self) -> Dict[OptionKey, Any]:
        """A copy of the override options."""
        return dict(self._options)

    def _new_response(self) -> Response:
        source = self._response_class
        if isinstance(source, BaseResponseFactory):
            return source.create_response()

        instance = source()
        if isinstance(instance, BaseResponseFactory):
            return instance.create_response()
        return instance

    def _check_preconditions(self, request: Request) -> None:
        if not self.allow_url_open or not self.transport.available:
            raise ClientError(
                f"Opening URLs is disabled for this client "
                f"({type(self.transport).__name__} unavailable or allow_url_open is off)."
            )

        if not request.uri.host:
            raise RequestError("Host is missing from the Uri.", request)

        if not request.method:
            raise RequestError("Request method is missing.", request)

    def build_options(self, request: Request, assembler: ResponseAssembler) -> TransportOptions:
        """Translate ``request`` with the client's overrides and ``assembler`` as header callback."""
        return self.translator.translate(
            request, self._options, header_function=assembler.on_header_line
        )

    def send_request(self, request: Request) -> Response:
        """
        Send a request and return the response.

        Args:
            request: The request to send

        Returns:
            The response, its body holding the received content

        Raises:
            ClientError: If the environment forbids the call, the transport
                         rejects an override option or the response
                         body cannot be written
            RequestError: If the request cannot be sent as given
            NetworkError: If the transport failed to complete the exchange
                          or the reply carried no valid status line
        """
        self._check_preconditions(request)

        assembler = ResponseAssembler(self._new_response())
        options = self.build_options(request, assembler)

        start_time = time.monotonic()
        logger.debug(f"Sending {request.method} {request.uri}")

        with self.transport.open() as handle:
            try:
                result = handle.perform(options)
            except ClientError as exc:
                exc.set_request(request)
                raise
            except OSError as exc:
                raise NetworkError(str(exc), request, cause=exc) from exc

        duration = time.monotonic() - start_time
        if result.error_code:
            logger.error(
                f"{request.method} {request.uri} failed: "
                f"[{result.error_code}] {result.error_message} ({duration:.3f}s)"
            )
            raise NetworkError(result.error_message, request, code=result.error_code)

        if (
            assembler.state is AssemblerState.AWAITING_STATUS_LINE
            and options.get(Option.HEADERFUNCTION) == assembler.on_header_line
        ):
            logger.error(f"{request.method} {request.uri} failed: no valid status line received")
            raise NetworkError(
                "No valid status line received from server",
                request,
                code=ErrorCode.WEIRD_SERVER_REPLY,
            )

        response = assembler.attach_body(result.content, request)
        logger.debug(
            f"{request.method} {request.uri} -> {response.status_code} ({duration:.3f}s)"
        )
        return response
