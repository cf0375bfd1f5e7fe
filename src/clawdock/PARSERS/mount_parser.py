"""
Parser for the comma separated OPENCLAW_EXTRA_MOUNTS list.
"""
from typing import List, Optional


class MountSpecParser:
    """
    Parser for extra mount descriptors such as
    '/srv/media:/home/node/media:ro, cache:/home/node/.cache'.
    """
    DELIMITER = ","

    @staticmethod
    def parse(raw: Optional[str]) -> List[str]:
        """
        Splits the list into mount specs.

        Each piece is trimmed; pieces that are empty after trimming are
        dropped. Order follows the input.

        Args:
            raw (Optional[str]): The delimited list, may be empty or None.

        Returns:
            List[str]: The surviving mount specs.
        """
        if not raw:
            return []
        mounts = []
        for piece in raw.split(MountSpecParser.DELIMITER):
            piece = piece.strip()
            if piece:
                mounts.append(piece)
        return mounts
