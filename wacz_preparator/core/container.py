"""
WACZ Container Assembly

Packages the capture files of the working directory and the page index into
a single WACZ file using webrecorder's `wacz` library, optionally signed by
an authsign-compatible endpoint.
"""

import logging
import os
from glob import glob
from typing import List, Optional

from .errors import ContainerError
from .models import PageEntry
from ..utils.manifest import PagesManifest

try:
    from wacz.main import main as wacz_main
except ImportError:  # pragma: no cover - handled at runtime
    wacz_main = None


class ContainerAssembler:
    """Builds WACZ files with `wacz create`."""

    def __init__(self,
                 pages_path: str,
                 signing_url: Optional[str] = None,
                 signing_token: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Args:
            pages_path: Where the pages.jsonl handed to the writer is kept
            signing_url: authsign-compatible endpoint used to sign the archive
            signing_token: Access token for `signing_url`
        """
        self.pages_path = pages_path
        self.signing_url = signing_url
        self.signing_token = signing_token if signing_url else None
        self.logger = logger or logging.getLogger(__name__)

    def available(self) -> bool:
        """Return True if the wacz library is importable."""
        return wacz_main is not None

    def build_args(self,
                   inputs: List[str],
                   output_path: str,
                   title: Optional[str] = None,
                   description: Optional[str] = None) -> List[str]:
        # Pages come from crawl reports, not from the CDX: keep them as given
        args = ['create', '-o', output_path, '-p', self.pages_path, '--copy-pages']
        if title:
            args += ['--title', title]
        if description:
            args += ['--desc', description]
        if self.signing_url:
            args += ['--signing-url', self.signing_url]
            if self.signing_token:
                args += ['--signing-token', self.signing_token]
        return args + inputs

    def assemble(self,
                 input_glob: str,
                 output_path: str,
                 pages: List[PageEntry],
                 title: Optional[str] = None,
                 description: Optional[str] = None) -> str:
        """
        Write the pages manifest and package the matching capture files.

        Args:
            input_glob: Glob matching the capture files to package
            output_path: Target .wacz path
            pages: Page entries for pages.jsonl
            title: Collection title
            description: Collection description

        Returns:
            Path of the WACZ file

        Raises:
            ContainerError: If the library is missing, fails, or no file is produced
        """
        if not self.available():
            raise ContainerError("The wacz library is not installed. Please install 'wacz'.")

        inputs = sorted(glob(input_glob))
        if not inputs:
            raise ContainerError(f"No capture files match {input_glob}")

        written = PagesManifest(self.pages_path).write(pages)
        self.logger.info(f"{written} pages written to {self.pages_path}")

        args = self.build_args(inputs, output_path, title, description)
        self.logger.debug(f"wacz {' '.join(args[:-len(inputs)])} <{len(inputs)} files>")

        try:
            result = wacz_main(args)
        except SystemExit as e:
            raise ContainerError(f"wacz rejected its arguments (exit code {e.code})") from e

        if result not in (None, 0):
            raise ContainerError(f"wacz exited with code {result}")

        if not os.path.exists(output_path):
            raise ContainerError(f"WACZ file was not created at {output_path}")

        return output_path
