# Copyright 2025 iGenius S.p.A
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler


def _rich_handler(level: int, console: Console, tracebacks: bool) -> RichHandler:
    return RichHandler(
        level=level,
        console=console,
        rich_tracebacks=tracebacks,
        markup=False,
        show_time=True,
        show_level=True,
        show_path=False,
    )


def setup_logger(
    name: str = "ironic_readiness",
    level: int | str = logging.INFO,
    console: Console | None = None,
    to_stderr: bool = False,
) -> logging.Logger:
    """Attach rich handlers to the package logger.

    Module loggers (``logging.getLogger(__name__)``) propagate here. Calling
    it again only updates the level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False  # Avoid duplicate logs

    if logger.handlers:
        return logger

    # stdout carries the CLI progress lines; keep it clean when piped
    to_stderr = to_stderr or not sys.stdout.isatty()
    stderr_console = Console(stderr=True)

    if to_stderr:
        logger.addHandler(_rich_handler(logging.NOTSET, stderr_console, tracebacks=True))
        return logger

    # Info and below → stdout, warnings and above → stderr
    stdout_handler = _rich_handler(logging.NOTSET, console or Console(), tracebacks=False)
    stdout_handler.addFilter(lambda record: record.levelno <= logging.INFO)
    logger.addHandler(stdout_handler)
    logger.addHandler(_rich_handler(logging.WARNING, stderr_console, tracebacks=True))

    return logger
