"""
Media helpers: reconciling historical product image shapes.
"""
from storefront.media.images import (
    ClassifiedImage,
    ImageShape,
    classify_image,
    normalize_image,
    normalize_images,
    normalize_product_images,
    placeholder_record,
    primary_image_url,
    to_canonical,
)

__all__ = [
    "ClassifiedImage",
    "ImageShape",
    "classify_image",
    "normalize_image",
    "normalize_images",
    "normalize_product_images",
    "placeholder_record",
    "primary_image_url",
    "to_canonical",
]
