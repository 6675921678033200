"""
Local process host for the demo

Loads .env, then starts the producer API, the consumer worker and the web
frontend as child processes with their environment wired together. Run the
infrastructure (RabbitMQ, Jaeger, OpenTelemetry collector) with
`docker compose up rabbitmq jaeger otel-collector` first.

    python -m otel_demo.apphost
    python -m otel_demo.apphost --only producer consumer
    python -m otel_demo.apphost --in-memory
"""

import argparse
import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from dotenv import load_dotenv

from otel_demo.core.config import CONSUMER_SERVICE_NAME, FRONTEND_SERVICE_NAME, PRODUCER_SERVICE_NAME, Config
from otel_demo.core.logger import logger

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVICES = ("producer", "consumer", "frontend")


@dataclass
class ServiceSpec:
    """One child process the host launches"""
    name: str
    module: str
    env: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None

    def command(self) -> List[str]:
        return [sys.executable, "-m", self.module]


def load_env_file(project_root: Path = PROJECT_ROOT) -> Optional[Path]:
    """Load the first .env found in the working directory or the project root"""
    for candidate in (Path.cwd() / ".env", project_root / ".env"):
        if candidate.is_file():
            load_dotenv(candidate)
            return candidate
    return None


def build_services(settings: Config, in_memory: bool = False, only: Optional[Sequence[str]] = None) -> List[ServiceSpec]:
    """
    Describe the child processes and the environment each one receives

    With the in-memory queue the consumer runs inside the producer process,
    so no separate consumer is launched.
    """
    shared = {
        "QUEUE_NAME": settings.queue_name,
        "RABBITMQ_HOST": settings.rabbitmq_host,
        "RABBITMQ_PORT": str(settings.rabbitmq_port),
        "RABBITMQ_USERNAME": settings.rabbitmq_username,
        "RABBITMQ_PASSWORD": settings.rabbitmq_password,
        "OTEL_EXPORTER_OTLP_ENDPOINT": settings.otel_exporter_otlp_endpoint,
        "AZURE_MONITOR_CONNECTION_STRING": settings.azure_monitor_connection_string,
        "ENVIRONMENT": settings.environment,
        "USE_IN_MEMORY_QUEUE": "true" if in_memory else "false",
    }
    producer_url = f"http://localhost:{settings.port}"

    services = [
        ServiceSpec(
            name="producer",
            module="otel_demo.producer.main",
            env={**shared, "SERVICE_NAME": PRODUCER_SERVICE_NAME, "PORT": str(settings.port)},
            url=producer_url,
        ),
        ServiceSpec(
            name="consumer",
            module="otel_demo.consumer.worker",
            env={**shared, "SERVICE_NAME": CONSUMER_SERVICE_NAME},
        ),
        ServiceSpec(
            name="frontend",
            module="otel_demo.frontend.main",
            env={
                **shared,
                "SERVICE_NAME": FRONTEND_SERVICE_NAME,
                "FRONTEND_PORT": str(settings.frontend_port),
                "PRODUCER_URL": producer_url,
            },
            url=f"http://localhost:{settings.frontend_port}",
        ),
    ]

    if in_memory:
        services = [service for service in services if service.name != "consumer"]
    if only:
        services = [service for service in services if service.name in only]
    return services


class AppHost:
    """Starts the services and tears all of them down when one exits"""

    def __init__(self, services: List[ServiceSpec], poll_interval: float = 0.5):
        self.services = services
        self.poll_interval = poll_interval
        self.processes: Dict[str, subprocess.Popen] = {}

    def start(self) -> None:
        for service in self.services:
            env = {**os.environ, **service.env}
            self.processes[service.name] = subprocess.Popen(service.command(), env=env, cwd=PROJECT_ROOT)
            logger.info(
                f"Started {service.name}",
                metadata={"url": service.url, "pid": self.processes[service.name].pid},
            )

    def wait(self) -> int:
        """Block until any child exits; return its exit code (0 when nothing was started)"""
        if not self.processes:
            return 0

        while True:
            for name, process in self.processes.items():
                code = process.poll()
                if code is not None:
                    logger.warning(f"{name} exited with code {code}", metadata={"service": name, "exitCode": code})
                    return code
            time.sleep(self.poll_interval)

    def stop(self, timeout: float = 10.0) -> None:
        for process in self.processes.values():
            if process.poll() is None:
                process.send_signal(signal.SIGTERM)

        deadline = time.monotonic() + timeout
        for name, process in self.processes.items():
            try:
                process.wait(timeout=max(0.0, deadline - time.monotonic()))
            except subprocess.TimeoutExpired:
                logger.warning(f"{name} did not stop in time, killing it", metadata={"service": name})
                process.kill()
                process.wait()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the OpenTelemetry queue demo locally")
    parser.add_argument("--only", nargs="+", choices=SERVICES, help="Start only these services")
    parser.add_argument(
        "--in-memory",
        action="store_true",
        help="Use the in-memory queue; the consumer runs inside the producer process",
    )
    args = parser.parse_args(argv)

    if args.in_memory and args.only and set(args.only) <= {"consumer"}:
        parser.error("--in-memory runs the consumer inside the producer; --only consumer leaves nothing to start")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logger.configure("apphost")

    env_file = load_env_file()
    if env_file:
        logger.info(f"Loaded {env_file}")

    settings = Config()
    services = build_services(settings, in_memory=args.in_memory, only=args.only)
    if not services:
        logger.error("No services selected")
        return 2

    host = AppHost(services)
    logger.info(f"Jaeger UI: {settings.jaeger_ui_url}")
    host.start()
    try:
        return host.wait()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 0
    finally:
        host.stop()


if __name__ == "__main__":
    sys.exit(main())
