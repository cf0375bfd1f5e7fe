# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
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

"""
Persistence of KEY=VALUE settings in the deployment's .env file.
"""
import logging
import os
import re
import tempfile
from typing import List, Mapping, Sequence

logger = logging.getLogger(__name__)

LINE_BREAK = re.compile(r"[\r\n]")


class ConfigStore:
    """
    Keeps a flat .env file in sync with the current settings.

    Lines are matched on the text before their first '='. Nothing else in
    the file is parsed, so comments, blank lines and values containing '='
    or quotes survive untouched.
    """

    @staticmethod
    def key_of(line: str) -> str:
        """
        Returns the key of a raw line: everything before the first '='.
        """
        return line.split("=", 1)[0]

    @staticmethod
    def read_lines(path: str) -> List[str]:
        """
        Reads the raw lines of a file without their newlines.

        A missing file reads as no lines. Bytes that are not valid UTF-8
        are kept as surrogates and written back unchanged.

        :param path: Path to the .env file.
        :return: The lines in file order.
        """
        if not os.path.exists(path):
            return []
        with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
            content = f.read()
        lines = content.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return lines

    @classmethod
    def read_keys(cls, path: str) -> List[str]:
        """
        Returns the key of every line in the file, in order.
        """
        return [cls.key_of(line) for line in cls.read_lines(path)]

    @classmethod
    def merge(cls,
              lines: Sequence[str],
              ordered_keys: Sequence[str],
              current_values: Mapping[str, str]) -> List[str]:
        """
        Applies the upsert to a list of lines.

        Lines whose key is managed are rewritten with the current value,
        other lines pass through. A managed key appearing more than once keeps
        only its first line. Managed keys not found are appended in order.

        :param lines: Existing lines of the file.
        :param ordered_keys: Managed keys, in the order new ones are appended.
        :param current_values: Value for every managed key.
        :return: The merged lines.
        :raises ValueError: If a managed value contains a line break.
        """
        for key in ordered_keys:
            if LINE_BREAK.search(current_values[key]):
                raise ValueError(f"{key} must not contain a line break")

        managed = set(ordered_keys)
        seen = set()
        merged = []

        for line in lines:
            key = cls.key_of(line)
            if key not in managed:
                merged.append(line)
                continue
            if key in seen:
                continue
            merged.append(f"{key}={current_values[key]}")
            seen.add(key)

        for key in ordered_keys:
            if key not in seen:
                merged.append(f"{key}={current_values[key]}")
                seen.add(key)

        return merged

    @classmethod
    def upsert(cls,
               path: str,
               ordered_keys: Sequence[str],
               current_values: Mapping[str, str]) -> None:
        """
        Updates managed keys in place and appends missing ones.

        The new content is written to a temporary file in the same directory
        and renamed over the target, so readers see either the old or the new
        file, never a partial one. Running twice with the same values leaves
        the file byte-identical.

        :param path: Path to the .env file.
        :param ordered_keys: Managed keys, in the order new ones are appended.
        :param current_values: Value for every managed key.
        :raises OSError: If the file cannot be read or written.
        :raises ValueError: If a managed value contains a line break.
        """
        path = str(path)
        lines = cls.merge(cls.read_lines(path), ordered_keys, current_values)
        content = "".join(f"{line}\n" for line in lines)

        directory = os.path.dirname(os.path.abspath(path))
        fd, tmp_path = tempfile.mkstemp(prefix=".env.", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
                f.write(content)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug("Persisted %d keys into %s", len(ordered_keys), path)
