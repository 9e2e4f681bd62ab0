"""Console styling for taskbuffer's interactive output.

The report itself is always printed unstyled; only confirmations, prompts,
warnings and errors go through these consoles.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

logger = logging.getLogger(__name__)

COLORS = {
    'text_primary': '#b7c5d3',
    'text_muted': '#718ca1',
    'primary': '#5ec4ff',
    'success': '#8bd49c',
    'warning': '#ebbf83',
    'error': '#e27e8d',
}

TASKBUFFER_THEME = Theme({
    'default': COLORS['text_primary'],
    'muted': COLORS['text_muted'],
    'primary': f"{COLORS['primary']} bold",
    'success': f"{COLORS['success']} bold",
    'warning': f"{COLORS['warning']} bold",
    'error': f"{COLORS['error']} bold",
    'date': COLORS['primary'],
})


def get_themed_console(stderr: bool = False) -> Console:
    """Get a console with the taskbuffer theme applied."""
    return Console(theme=TASKBUFFER_THEME, stderr=stderr, soft_wrap=True)


def setup_logging(verbose: bool = False) -> None:
    """Route taskbuffer log records to stderr through rich.

    Safe to call repeatedly; the handler is only installed once and the
    level follows the latest call.
    """
    package_logger = logging.getLogger("taskbuffer")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if any(isinstance(h, RichHandler) for h in package_logger.handlers):
        return
    handler = RichHandler(
        console=get_themed_console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
