"""
Run configuration.

`PreparatorConfig` is immutable and validated once, when it is built from
raw options. Every failing field is reported in a single `ConfigError`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Any

from .errors import ConfigError
from ..utils.validators import (
    validate_required_text,
    validate_positive_int,
    validate_output_path,
    validate_signing_url,
    validate_capture_format,
    validate_timeout,
)


DEFAULT_CONCURRENCY = 50


@dataclass(frozen=True)
class PreparatorConfig:
    username: str
    password: str
    collection_id: int
    output_path: str
    concurrency: int = DEFAULT_CONCURRENCY
    signing_url: Optional[str] = None
    signing_token: Optional[str] = None
    capture_format: str = "warc.gz"
    request_timeout: Optional[float] = None
    clear_working_dir: bool = False

    @classmethod
    def from_options(cls,
                     username: Any = None,
                     password: Any = None,
                     collection_id: Any = None,
                     output_path: Optional[str] = None,
                     concurrency: Any = None,
                     signing_url: Optional[str] = None,
                     signing_token: Optional[str] = None,
                     capture_format: Optional[str] = None,
                     request_timeout: Any = None,
                     clear_working_dir: bool = False) -> "PreparatorConfig":
        """
        Build a configuration from raw (CLI or caller-provided) options.

        Raises:
            ConfigError: Listing every invalid field
        """
        errors = []

        ok_user, user, err = validate_required_text(username, "username")
        if not ok_user:
            errors.append(err)

        ok_pass, pwd, err = validate_required_text(password, "password")
        if not ok_pass:
            errors.append(err)

        ok_id, cid, err = validate_positive_int(collection_id, "collection_id")
        if not ok_id:
            errors.append(err)

        ok_out, out, err = validate_output_path(output_path)
        if not ok_out:
            errors.append(err)

        conc = DEFAULT_CONCURRENCY
        if concurrency is not None:
            ok_conc, conc, err = validate_positive_int(concurrency, "concurrency")
            if not ok_conc:
                errors.append(err)

        ok_sign, url, err = validate_signing_url(signing_url)
        if not ok_sign:
            errors.append(err)

        ok_fmt, fmt, err = validate_capture_format(capture_format)
        if not ok_fmt:
            errors.append(err)

        ok_timeout, timeout, err = validate_timeout(request_timeout)
        if not ok_timeout:
            errors.append(err)

        if errors:
            raise ConfigError(errors)

        # A token is only meaningful alongside a signing endpoint
        token = str(signing_token) if (url and signing_token) else None

        return cls(
            username=user,
            password=pwd,
            collection_id=cid,
            output_path=out,
            concurrency=conc,
            signing_url=url,
            signing_token=token,
            capture_format=fmt,
            request_timeout=timeout,
            clear_working_dir=bool(clear_working_dir),
        )

    @property
    def working_dir(self) -> str:
        return os.path.join(self.output_path, str(self.collection_id))

    @property
    def container_path(self) -> str:
        return os.path.join(self.output_path, f"{self.collection_id}.wacz")

    @property
    def pages_path(self) -> str:
        return os.path.join(self.output_path, f"{self.collection_id}.pages.jsonl")

    @property
    def capture_extension(self) -> str:
        return f".{self.capture_format}"
