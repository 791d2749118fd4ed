import logging
import mimetypes
from pathlib import Path
from typing import Optional

import filetype

from .. import config


class MimetypeClassifier:
    """
    Classifies files by mimetype.

    A fixed extension table is consulted first, so no file I/O happens for
    common media on slow or remote storage. Anything else is content-sniffed.
    """

    def classify(self, path: Path) -> str:
        mimetype = self.from_extension(path)
        if mimetype:
            return mimetype
        return self.sniff(path)

    def from_extension(self, path: Path) -> Optional[str]:
        name = Path(path).name
        if '.' not in name:
            return None
        ext = name.rsplit('.', 1)[1].lower()
        return config.EXT_TO_MIMETYPE.get(ext)

    def sniff(self, path: Path) -> str:
        mimetype = None
        try:
            mimetype = filetype.guess_mime(str(path))
        except OSError as e:
            logging.debug(f"Content sniffing failed for {path}: {e}")

        if not mimetype:
            # filetype only knows binary signatures; text formats fall back to the name
            mimetype, _ = mimetypes.guess_type(Path(path).name, strict=False)

        mimetype = mimetype or config.DEFAULT_MIMETYPE
        return config.MIMETYPE_ALIASES.get(mimetype, mimetype)
