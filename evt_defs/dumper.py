"""Wrapper around the external message table dump tool.

The dump tool takes the path of a resource binary and prints its message
table as text, one ``ID 0x........ (decimal) Language: ....`` header line
per message followed by the message body. Anything with the same call
shape, ``dump(path) -> list of lines``, can stand in for it.
"""

import logging
import subprocess
from typing import Callable, List, Optional

from .exceptions import DumpError
from .utils import check_dumper_available

logger = logging.getLogger(__name__)

ResourceDumper = Callable[[str], List[str]]


class ExternalDumper:
    """Run the message dump tool as a subprocess.

    Args:
        executable: Path or command name of the dump tool.
        timeout: Seconds to wait per file. None waits indefinitely.
        encoding: Encoding of the tool's standard output.
    """

    def __init__(
        self,
        executable: str,
        timeout: Optional[float] = None,
        encoding: str = "utf-8",
    ) -> None:
        self.executable = check_dumper_available(executable)
        self.timeout = timeout
        self.encoding = encoding

    def __call__(self, resource_file: str) -> List[str]:
        """Dump one resource file and return its output lines.

        Raises:
            DumpError: If the tool fails, times out, or cannot be started.
        """
        command = [self.executable, resource_file]
        logger.debug(f"Running {command}")

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding=self.encoding,
                errors="replace",
                timeout=self.timeout,
                check=True,
            )
        except subprocess.TimeoutExpired:
            raise DumpError(
                f"Dumping {resource_file} timed out after {self.timeout} seconds"
            )
        except subprocess.CalledProcessError as e:
            raise DumpError(
                f"Dump tool failed for {resource_file}",
                return_code=e.returncode,
                stderr=e.stderr.strip() if e.stderr else None,
            )
        except OSError as e:
            raise DumpError(f"Cannot run dump tool for {resource_file}: {e}")

        return completed.stdout.splitlines()
