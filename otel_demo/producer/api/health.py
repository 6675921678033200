"""
Health and operational API endpoints
These endpoints are used by the process host, load balancers and monitoring tools
"""

import os
import platform
import time
from datetime import datetime

import psutil
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from otel_demo.core.config import Config, config as default_config
from otel_demo.core.logger import logger

router = APIRouter()

# Track service start time
start_time = time.time()


def get_settings(request: Request) -> Config:
    """Settings the app was created with"""
    return getattr(request.app.state, "settings", default_config)


@router.get("/health")
def health_check(request: Request):
    """Basic health check endpoint"""
    settings = get_settings(request)
    return {
        "status": "healthy",
        "service": settings.service_name,
        "timestamp": datetime.now().isoformat(),
        "version": settings.service_version,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check - ready once the message broker is connected"""
    settings = get_settings(request)
    broker = getattr(request.app.state, "broker", None)
    broker_healthy = broker is not None and broker.is_healthy()

    checks = {
        "message_broker": {
            "status": "healthy" if broker_healthy else "unhealthy",
            "system": broker.system if broker is not None else None,
            "queue": broker.queue_name if broker is not None else settings.queue_name,
        }
    }

    if broker_healthy:
        return {
            "status": "ready",
            "service": settings.service_name,
            "timestamp": datetime.now().isoformat(),
            "checks": checks,
        }

    logger.warning(
        "Readiness check failed - message broker unavailable",
        metadata={"event": "readiness_check_failed", "checks": checks},
    )
    return JSONResponse(
        status_code=503,
        content={
            "status": "not ready",
            "service": settings.service_name,
            "timestamp": datetime.now().isoformat(),
            "checks": checks,
        },
    )


@router.get("/health/live")
def liveness_check(request: Request):
    """Liveness check - check if the app is running"""
    settings = get_settings(request)
    return {
        "status": "alive",
        "service": settings.service_name,
        "timestamp": datetime.now().isoformat(),
        "uptime": time.time() - start_time,
    }


@router.get("/metrics")
def metrics(request: Request):
    """Basic process metrics"""
    settings = get_settings(request)
    process = psutil.Process()
    memory_info = process.memory_info()

    return {
        "service": settings.service_name,
        "timestamp": datetime.now().isoformat(),
        "metrics": {
            "uptime": time.time() - start_time,
            "memory": {
                "rss": memory_info.rss,
                "vms": memory_info.vms,
            },
            "cpu_percent": process.cpu_percent(),
            "pid": os.getpid(),
            "python_version": platform.python_version(),
        },
    }
