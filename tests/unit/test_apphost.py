"""Unit tests for the local process host"""
import os
import signal
import sys

import pytest
from unittest.mock import Mock, patch

from otel_demo.apphost import AppHost, ServiceSpec, build_services, load_env_file, main, parse_args
from otel_demo.core.config import Config


@pytest.fixture
def host_settings():
    return Config(
        port=5000,
        frontend_port=5173,
        queue_name="otel-demo-queue",
        otel_exporter_otlp_endpoint="http://localhost:4317",
        azure_monitor_connection_string="InstrumentationKey=abc",
    )


class TestBuildServices:
    """Test child process descriptions"""

    def test_all_services(self, host_settings):
        """Test the default set of services and their wiring"""
        services = {service.name: service for service in build_services(host_settings)}

        assert list(services) == ["producer", "consumer", "frontend"]
        assert services["producer"].module == "otel_demo.producer.main"
        assert services["producer"].env["SERVICE_NAME"] == "producer-api"
        assert services["producer"].env["PORT"] == "5000"
        assert services["consumer"].env["SERVICE_NAME"] == "consumer-service"
        assert services["frontend"].env["PRODUCER_URL"] == "http://localhost:5000"
        assert services["frontend"].url == "http://localhost:5173"

    def test_shared_environment(self, host_settings):
        """Test every service gets the queue and telemetry settings"""
        for service in build_services(host_settings):
            assert service.env["QUEUE_NAME"] == "otel-demo-queue"
            assert service.env["OTEL_EXPORTER_OTLP_ENDPOINT"] == "http://localhost:4317"
            assert service.env["AZURE_MONITOR_CONNECTION_STRING"] == "InstrumentationKey=abc"
            assert service.env["USE_IN_MEMORY_QUEUE"] == "false"

    def test_in_memory_drops_consumer(self, host_settings):
        """Test the consumer runs inside the producer with the in-memory queue"""
        services = build_services(host_settings, in_memory=True)

        assert [service.name for service in services] == ["producer", "frontend"]
        assert all(service.env["USE_IN_MEMORY_QUEUE"] == "true" for service in services)

    def test_only(self, host_settings):
        """Test filtering services"""
        services = build_services(host_settings, only=["consumer"])
        assert [service.name for service in services] == ["consumer"]

    def test_command(self):
        """Test services run as modules of the current interpreter"""
        spec = ServiceSpec(name="consumer", module="otel_demo.consumer.worker")
        assert spec.command() == [sys.executable, "-m", "otel_demo.consumer.worker"]


class TestParseArgs:
    """Test command line parsing"""

    def test_defaults(self):
        args = parse_args([])
        assert args.only is None
        assert args.in_memory is False

    def test_flags(self):
        args = parse_args(["--only", "producer", "frontend", "--in-memory"])
        assert args.only == ["producer", "frontend"]
        assert args.in_memory is True

    def test_unknown_service(self):
        with pytest.raises(SystemExit):
            parse_args(["--only", "database"])


class TestLoadEnvFile:
    """Test .env discovery"""

    def test_loads_from_working_directory(self, tmp_path, monkeypatch):
        """Test the working directory .env is used first"""
        env_file = tmp_path / ".env"
        env_file.write_text("OTEL_DEMO_APPHOST_TEST=1\n")
        monkeypatch.chdir(tmp_path)

        try:
            assert load_env_file(project_root=tmp_path / "missing") == env_file
            assert os.environ["OTEL_DEMO_APPHOST_TEST"] == "1"
        finally:
            os.environ.pop("OTEL_DEMO_APPHOST_TEST", None)

    def test_no_env_file(self, tmp_path, monkeypatch):
        """Test nothing is loaded when no .env exists"""
        monkeypatch.chdir(tmp_path)
        assert load_env_file(project_root=tmp_path) is None


class TestAppHost:
    """Test child process supervision"""

    @patch("otel_demo.apphost.subprocess.Popen")
    def test_start_passes_environment(self, mock_popen):
        """Test each service is started with its environment"""
        mock_popen.return_value.pid = 123
        host = AppHost([ServiceSpec(name="consumer", module="otel_demo.consumer.worker", env={"QUEUE_NAME": "q"})])

        host.start()

        args, kwargs = mock_popen.call_args
        assert args[0][-1] == "otel_demo.consumer.worker"
        assert kwargs["env"]["QUEUE_NAME"] == "q"

    def test_wait_returns_first_exit_code(self):
        """Test wait returns when any child exits"""
        host = AppHost([], poll_interval=0)
        running, exited = Mock(), Mock()
        running.poll.return_value = None
        exited.poll.return_value = 3
        host.processes = {"producer": running, "consumer": exited}

        assert host.wait() == 3

    def test_stop_terminates_running_children(self):
        """Test stop signals running children and skips exited ones"""
        host = AppHost([])
        running, exited = Mock(), Mock()
        running.poll.return_value = None
        exited.poll.return_value = 0
        host.processes = {"producer": running, "consumer": exited}

        host.stop(timeout=1)

        running.send_signal.assert_called_once_with(signal.SIGTERM)
        exited.send_signal.assert_not_called()
        running.wait.assert_called_once()

    def test_wait_without_children(self):
        """Test wait returns at once when nothing was started"""
        assert AppHost([], poll_interval=0).wait() == 0

    @patch("otel_demo.apphost.logger")
    def test_wait_logs_exit(self, mock_logger):
        """Test a child exit is reported through the structured logger"""
        host = AppHost([], poll_interval=0)
        exited = Mock()
        exited.poll.return_value = 1
        host.processes = {"frontend": exited}

        host.wait()

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[1]["metadata"] == {"service": "frontend", "exitCode": 1}


class TestMain:
    """Test the host entry point"""

    def test_in_memory_consumer_only_is_rejected(self):
        """Test a selection that starts nothing is a usage error"""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--in-memory", "--only", "consumer"])

        assert exc_info.value.code == 2

    def test_in_memory_with_other_services_is_accepted(self):
        """Test the consumer may be named next to services that still run"""
        args = parse_args(["--in-memory", "--only", "consumer", "producer"])
        assert args.only == ["consumer", "producer"]

    @patch("otel_demo.apphost.AppHost")
    @patch("otel_demo.apphost.build_services", return_value=[])
    @patch("otel_demo.apphost.load_env_file", return_value=None)
    def test_main_with_no_services(self, mock_load_env, mock_build, mock_host):
        """Test main exits non-zero instead of waiting on nothing"""
        assert main([]) == 2
        mock_host.assert_not_called()

    @patch("otel_demo.apphost.AppHost")
    @patch("otel_demo.apphost.load_env_file", return_value=None)
    def test_main_runs_and_stops_host(self, mock_load_env, mock_host):
        """Test main starts the host, returns its exit code and stops it"""
        mock_host.return_value.wait.return_value = 0

        assert main(["--only", "producer"]) == 0

        services = mock_host.call_args[0][0]
        assert [service.name for service in services] == ["producer"]
        mock_host.return_value.start.assert_called_once()
        mock_host.return_value.stop.assert_called_once()
