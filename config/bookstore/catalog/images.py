"""
Validacion de portadas de libros
"""
from PIL import Image, UnidentifiedImageError

from ..core.exceptions import ValidationError


class CoverImageService:
    """Reglas para las portadas subidas desde el catalogo"""

    MAX_FILE_SIZE = 2 * 1024 * 1024  # 2MB
    ALLOWED_FORMATS = ['JPEG', 'PNG', 'WEBP']

    @classmethod
    def validate_image_file(cls, image_file):
        """
        Valida tamaño y formato de la portada

        Raises:
            ValidationError: Si la imagen no cumple los requisitos
        """
        if image_file.size > cls.MAX_FILE_SIZE:
            raise ValidationError(
                f"La imagen es demasiado grande. "
                f"Máximo permitido: {cls.MAX_FILE_SIZE // (1024 * 1024)}MB",
                code="INVALID_COVER",
            )

        try:
            with Image.open(image_file) as img:
                image_format = (img.format or "").upper()
        except UnidentifiedImageError as e:
            raise ValidationError(f"El archivo no es una imagen válida: {e}", code="INVALID_COVER")
        finally:
            image_file.seek(0)

        if image_format not in cls.ALLOWED_FORMATS:
            raise ValidationError(
                f"Formato de imagen no permitido. Formatos válidos: {', '.join(cls.ALLOWED_FORMATS)}",
                code="INVALID_COVER",
            )
