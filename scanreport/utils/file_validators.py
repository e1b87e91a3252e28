"""
File validation utilities for ScanReport.

Handles validation of uploaded scan images including:
- File size limits
- File extension validation
- Corruption detection
"""

import io
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from scanreport.config import settings


class FileValidationError(Exception):
    """Raised when file validation fails."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class FileValidator:
    """
    Validates uploaded scans before they reach the export engine.

    Ensures files are:
    - Non-empty and within size limits
    - Have allowed extensions
    - Are decodable images of sane dimensions
    """

    MAX_DIMENSION = 20000

    def __init__(self):
        self.max_file_size = settings.max_file_size_bytes
        self.image_extensions = settings.image_extensions

    def validate_file_size(self, file_content: bytes, filename: str) -> bool:
        """
        Check if file is non-empty and within size limits.

        Raises:
            FileValidationError: If file is empty or exceeds size limit
        """
        if len(file_content) == 0:
            raise FileValidationError(
                f"File '{filename}' is empty",
                error_code="EMPTY_FILE"
            )
        if len(file_content) > self.max_file_size:
            raise FileValidationError(
                f"File '{filename}' exceeds maximum size of {settings.max_file_size_mb}MB",
                error_code="FILE_TOO_LARGE"
            )
        return True

    def validate_extension(self, filename: str) -> bool:
        """
        Check if file has an allowed image extension.

        Raises:
            FileValidationError: If extension not allowed
        """
        ext = Path(filename).suffix.lower()
        if ext not in self.image_extensions:
            raise FileValidationError(
                f"File extension '{ext}' not allowed. "
                f"Allowed: {', '.join(self.image_extensions)}",
                error_code="INVALID_EXTENSION"
            )
        return True

    def validate_image(
        self,
        file_content: bytes,
        filename: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate a scan image.

        Args:
            file_content: Raw image bytes
            filename: Original filename

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.validate_extension(filename)
            self.validate_file_size(file_content, filename)

            img = Image.open(io.BytesIO(file_content))
            img.verify()

            # Re-open to get dimensions (verify() invalidates the image)
            img = Image.open(io.BytesIO(file_content))
            width, height = img.size

            if width > self.MAX_DIMENSION or height > self.MAX_DIMENSION:
                raise FileValidationError(
                    "Image dimensions too large",
                    error_code="IMAGE_TOO_LARGE"
                )

            return True, None

        except FileValidationError as e:
            return False, e.message
        except Exception as e:
            return False, f"Image validation failed: {str(e)}"


# Singleton instance for easy access
file_validator = FileValidator()
