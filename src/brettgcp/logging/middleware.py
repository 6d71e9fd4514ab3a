from .logger import Logger

class Middleware():
    """
    WSGI middleware that ties the request's Cloud Trace id to the logger.
        app = Middleware(app, Logger("my-app"))
    A WSGI request is served by one thread, so on the way in the trace id from
    the X-Cloud-Trace-Context header is registered against the current thread
    and every entry the logger writes while the request is handled carries it.
    The logger is also put in the environ as 'brettgcp.logger'.
    The trace id is always removed when the request is done.
    """
    ENVIRON_KEY = "brettgcp.logger"

    def __init__(self, app, logger: Logger) -> None:
        self.app = app
        self.logger = logger

    def __call__(self, environ: dict, start_response):
        environ[self.ENVIRON_KEY] = self.logger
        self.logger.add_trace_id(self.extract_trace_id(environ))
        try:
            return self.app(environ, start_response)
        finally:
            self.logger.delete_trace_id()

    @staticmethod
    def extract_trace_id(environ: dict) -> str|None:
        """
        The header looks like TRACE_ID/SPAN_ID;o=TRACE_TRUE, only the trace id is wanted.
        None if the header is missing or empty.
        """
        trace_context = str(environ.get("HTTP_X_CLOUD_TRACE_CONTEXT", "") or "")
        if not trace_context:
            return None
        return trace_context.split("/", 1)[0]
