"""
Phase 5 — AI & LLM development.

    ollama       brew install, then (when a model is configured) start a
                 background ``ollama serve``, wait for its API, pull the
                 model and stop the server again
    lm-studio    cask
    open-webui   wait for the Docker daemon, then create or start the
                 ``open-webui`` container
    gemini-cli   npm global
"""

from __future__ import annotations

import logging

from macsetup.core.catalog.units import brew, cask, each, npm, step
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import build_phase
from macsetup.core.models.phase import InstallableUnit, Phase
from macsetup.core.reliability.retry import wait_until

logger = logging.getLogger(__name__)

OLLAMA_API = "http://localhost:11434/api/tags"
OPEN_WEBUI_IMAGE = "ghcr.io/open-webui/open-webui:main"
OPEN_WEBUI_CONTAINER = "open-webui"
DOCKER_WAIT_ATTEMPTS = 30


def _pull_model(ctx: RunContext) -> None:
    model = ctx.config.ollama_model
    if not model:
        ctx.transcript.info("ollama_model is empty — skipping model download")
        return

    server = ctx.runner.spawn("ollama", "serve", env=ctx.env)
    try:
        ready = wait_until(
            lambda: ctx.run("curl", "-sf", OLLAMA_API).ok,
            attempts=10,
            interval=1,
            sleep=ctx.sleep,
        )
        if not ready:
            logger.info("Ollama API not answering yet, attempting pull anyway")
        if not ctx.run("ollama", "pull", model, retry=True).ok:
            ctx.transcript.warning(f"Ollama model pull failed — pull manually: ollama pull {model}")
    finally:
        server.terminate()


def _docker_ready(ctx: RunContext) -> bool:
    return ctx.run("docker", "info").ok


def _start_open_webui(ctx: RunContext) -> None:
    def _announce(attempt: int) -> None:
        ctx.transcript.line(f"Waiting for Docker daemon... ({attempt}/{DOCKER_WAIT_ATTEMPTS})")

    ready = wait_until(
        lambda: _docker_ready(ctx),
        attempts=DOCKER_WAIT_ATTEMPTS,
        interval=2,
        sleep=ctx.sleep,
        on_wait=_announce,
    )
    if not ready:
        ctx.transcript.warning(
            "Docker daemon not ready after 60s — skipping Open WebUI. "
            f"Start Docker Desktop and run: docker start {OPEN_WEBUI_CONTAINER}"
        )
        return

    names = ctx.run("docker", "ps", "-a", "--format", "{{.Names}}").stdout.splitlines()
    if OPEN_WEBUI_CONTAINER in (n.strip() for n in names):
        ctx.run("docker", "start", OPEN_WEBUI_CONTAINER)
        return

    ctx.run_checked(
        "docker", "run", "-d",
        "-p", "3000:8080",
        "--add-host=host.docker.internal:host-gateway",
        "-v", "open-webui:/app/backend/data",
        "--name", OPEN_WEBUI_CONTAINER,
        "--restart", "always",
        OPEN_WEBUI_IMAGE,
        retry=True,
    )


def phase() -> Phase:
    return build_phase(
        5,
        "AI & LLM Development",
        step(
            "ollama",
            brew("ollama"),
            InstallableUnit(id="ollama-model", action=_pull_model, toggle="brew.ollama"),
            chained=True,
        ),
        *each(cask("lm-studio", app="LM Studio")),
        step("open-webui", InstallableUnit(id="open-webui", action=_start_open_webui)),
        *each(npm("@google/gemini-cli", binary="gemini")),
    )
