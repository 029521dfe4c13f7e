"""
Assemble downloaded page images into a single PDF
"""
from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Sequence, Tuple

import fitz  # PyMuPDF
from PIL import Image

from .errors import AssemblyError
from .models import OutputArtifact

logger = logging.getLogger("slides2pdf")

# Formats MuPDF embeds as-is; anything else is re-encoded to PNG first.
NATIVE_FORMATS = {"JPEG", "PNG"}


class PdfAssembler:
    """One image per page, in the order given"""

    def assemble(self, ordered_image_paths: Sequence[Path], output_path: Path) -> OutputArtifact:
        """
        Write a PDF where page N is image N

        Args:
            ordered_image_paths: Images already in final page order
            output_path: Destination PDF path

        Returns:
            OutputArtifact describing the written file

        Raises:
            AssemblyError: On empty input or an undecodable image
        """
        paths = [Path(p) for p in ordered_image_paths]
        if not paths:
            raise AssemblyError("No images to assemble")

        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        partial = output.with_name(output.name + ".part")

        document = fitz.open()
        try:
            for path in paths:
                stream, (width, height) = self._load_page_image(path)
                page = document.new_page(width=width, height=height)
                page.insert_image(page.rect, stream=stream)

            document.save(str(partial), garbage=3, deflate=True)
        except AssemblyError:
            partial.unlink(missing_ok=True)
            raise
        except (RuntimeError, ValueError) as exc:
            partial.unlink(missing_ok=True)
            raise AssemblyError(f"Unable to write PDF {output}: {exc}") from exc
        finally:
            document.close()

        os.replace(partial, output)
        logger.info("Assembled %d pages into %s", len(paths), output)
        return OutputArtifact(path=output, page_count=len(paths))

    @staticmethod
    def _load_page_image(path: Path) -> Tuple[bytes, Tuple[int, int]]:
        try:
            with Image.open(path) as image:
                image.load()
                size = image.size
                if image.format in NATIVE_FORMATS:
                    return path.read_bytes(), size

                if image.mode not in {"RGB", "L"}:
                    image = image.convert("RGB")
                buffer = io.BytesIO()
                image.save(buffer, format="PNG")
                return buffer.getvalue(), size
        except (OSError, Image.DecompressionBombError) as exc:
            raise AssemblyError(f"Cannot decode image: {path}") from exc
