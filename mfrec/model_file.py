from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, TextIO

from . import __version__
from .errors import ModelCorruptError, ResourceError


FORMAT_TAG = "mfrec"


@contextmanager
def open_writer(path: str, model_type: type) -> Iterator[TextIO]:
    """
    Open a model file for writing and emit its header lines.

    Content goes to '<path>.tmp' first and replaces `path` only when the
    block exits normally, so an interrupted save never clobbers a good file.
    """
    tmp_path = f"{path}.tmp"
    try:
        f = open(tmp_path, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise ResourceError(f"cannot open model file for writing: {path}") from e

    try:
        with f:
            f.write(f"{model_type.__name__}\n")
            f.write(f"{FORMAT_TAG} {__version__}\n")
            yield f
        os.replace(tmp_path, path)
    except OSError as e:
        _remove_quietly(tmp_path)
        raise ResourceError(f"cannot write model file: {path}") from e
    except BaseException:
        _remove_quietly(tmp_path)
        raise


@contextmanager
def open_reader(path: str, model_type: type) -> Iterator[TextIO]:
    """Open a model file for reading and check that it was written for `model_type`."""
    try:
        f = open(path, "r", encoding="utf-8")
    except OSError as e:
        raise ResourceError(f"cannot open model file for reading: {path}") from e

    with f:
        try:
            type_line = f.readline().strip()
            version_line = f.readline().split()
        except UnicodeDecodeError as e:
            raise ModelCorruptError(f"{path} has an undecodable header") from e
        except OSError as e:
            raise ResourceError(f"cannot read model file: {path}") from e
        if type_line != model_type.__name__:
            raise ModelCorruptError(
                f"{path} holds a {type_line or 'unknown'} model, expected {model_type.__name__}"
            )
        if len(version_line) != 2 or version_line[0] != FORMAT_TAG:
            raise ModelCorruptError(f"{path} has no '{FORMAT_TAG} <version>' header line")
        try:
            yield f
        except UnicodeDecodeError as e:
            raise ModelCorruptError(f"{path} contains bytes that are not UTF-8") from e
        except OSError as e:
            raise ResourceError(f"cannot read model file: {path}") from e


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
