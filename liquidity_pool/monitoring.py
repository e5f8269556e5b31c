# liquidity_pool/monitoring.py
import time
import psutil
import socket
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry
from prometheus_client.exposition import make_wsgi_app
from wsgiref.simple_server import make_server, WSGIServer
from socketserver import ThreadingMixIn
import threading
import logging

logger = logging.getLogger(__name__)


# Create a threaded WSGI server for the Prometheus metrics
class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """A WSGI server that runs in a separate thread to not block the pool."""
    allow_reuse_address = True


class Monitor:
    def __init__(self, host="127.0.0.1", port=9090):
        self.host = host
        self.port = port
        self.server = None
        self.thread = None
        self.pool = None

        # Isolated registry per monitor
        self.registry = CollectorRegistry()

        self.op_counter = Counter('pool_operations_total', 'Pool operations by outcome', ['operation', 'status'], registry=self.registry)
        self.op_latency = Histogram('pool_operation_latency_seconds', 'Latency of pool operations', ['operation'], registry=self.registry)
        self.event_counter = Counter('pool_events_total', 'Events emitted by the pool', ['event'], registry=self.registry)
        self.reserve = Gauge('pool_reserve', 'Pool reserve per asset', ['asset'], registry=self.registry)
        self.total_shares = Gauge('pool_total_shares', 'Outstanding pool shares', registry=self.registry)
        self.amm_k = Gauge('amm_invariant_k', 'Constant product k', registry=self.registry)
        self.cpu_usage = Gauge('system_cpu_percent', 'Current CPU usage percent', registry=self.registry)
        self.memory_usage = Gauge('system_memory_percent', 'Current memory usage percent', registry=self.registry)

    def attach(self, pool):
        """Track `pool`: record its operations and refresh gauges on each event."""
        self.pool = pool
        pool.monitor = self
        pool.events.subscribe(self.on_event)
        self.update()

    def start_server(self):
        """Creates and starts the Prometheus HTTP server with retry logic."""
        app = make_wsgi_app(self.registry)

        max_retries = 5
        retry_delay = 2

        for attempt in range(max_retries):
            try:
                self.server = make_server(self.host, self.port, app, ThreadingWSGIServer)
                self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

                self.thread = threading.Thread(target=self.server.serve_forever)
                self.thread.daemon = True
                self.thread.start()
                logger.info(f"Prometheus server started on http://{self.host}:{self.port}")
                return
            except OSError as e:
                if e.errno == 98:  # Address already in use
                    if attempt < max_retries - 1:
                        logger.warning(f"Port {self.port} in use, retrying in {retry_delay}s (attempt {attempt+1}/{max_retries})...")
                        time.sleep(retry_delay)
                    else:
                        logger.error(f"Failed to bind to port {self.port} after {max_retries} attempts")
                        raise
                else:
                    raise

    def stop_server(self):
        """Stops the HTTP server."""
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Prometheus server stopped.")

    def update(self):
        if self.pool is not None:
            reserve_a, reserve_b = self.pool.get_reserves()
            self.reserve.labels(asset=self.pool.asset_a.asset_id).set(reserve_a)
            self.reserve.labels(asset=self.pool.asset_b.asset_id).set(reserve_b)
            self.total_shares.set(self.pool.total_supply())
            # float() loses precision past 2**53; good enough for a dashboard
            self.amm_k.set(float(reserve_a * reserve_b))

        self.cpu_usage.set(psutil.cpu_percent())
        self.memory_usage.set(psutil.virtual_memory().percent)

    def on_event(self, event):
        self.event_counter.labels(event=event.name).inc()
        self.update()

    def record_operation(self, operation: str, status: str, latency: float):
        self.op_counter.labels(operation=operation, status=status).inc()
        self.op_latency.labels(operation=operation).observe(latency)
