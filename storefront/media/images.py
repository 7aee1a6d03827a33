"""
Product image shape normalization.

Product documents have stored ``images`` in several shapes over time:

- a bare URL string (oldest uploads),
- ``{"full": ..., "thumb": ...}`` pairs (dual-resolution uploads),
- ``{"_id": ...}`` stubs left behind by a broken migration,
- the canonical Cloudinary-derived record::

    {
        "publicId": "products/abc",
        "variants": {"micro", "thumb", "small", "medium", "large", "original"},
        "formats": {"avif", "webp", "jpg"},
        "metadata": {"width", "height", "aspectRatio"},
    }

Each raw element is classified once into an ``ImageShape`` and converted by a
single match in ``to_canonical``. Nothing in this module raises on bad input:
anything unrecognized becomes the placeholder record.
"""

import copy
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from storefront.core.config import StorefrontConfig, get_config

VARIANT_SLOTS = ("micro", "thumb", "small", "medium", "large", "original")

# Cloudinary transformation per variant slot / format
VARIANT_TRANSFORMS = {
    "micro": "c_fill,w_16,h_16,q_auto,f_auto",
    "thumb": "c_fill,w_150,h_150,q_auto,f_auto",
    "small": "c_fill,w_300,h_300,q_auto,f_auto",
    "medium": "c_fill,w_600,h_600,q_auto,f_auto",
    "large": "c_fill,w_1200,h_1200,q_auto,f_auto",
    "original": "q_auto,f_auto",
}
FORMAT_TRANSFORMS = {
    "avif": "f_avif,q_auto",
    "webp": "f_webp,q_auto",
    "jpg": "f_jpg,q_auto",
}

# Cloudinary transformation parameter keys; a path segment made only of
# comma-separated <key>_<value> components is a transformation, not a folder
_TRANSFORM_KEYS = (
    "ar|a|bo|b|co|c|dpr|dl|dn|du|d|eo|e|fl|fn|fps|f|g|h|ki|l|o|pg|q|r|so|sp|t|u|vc|vs|w|x|y|z"
)
_TRANSFORM_COMPONENT = rf"(?:{_TRANSFORM_KEYS})_[^,/]+"
_TRANSFORM_SEGMENT = rf"{_TRANSFORM_COMPONENT}(?:,{_TRANSFORM_COMPONENT})*/"

# res.cloudinary.com/<cloud>/image/upload/[<transforms>/][v123/]<publicId>.<ext>
_CLOUDINARY_UPLOAD_RE = re.compile(
    r"res\.cloudinary\.com/(?P<cloud>[^/]+)/image/upload/"
    rf"(?:{_TRANSFORM_SEGMENT})*"
    r"(?:v\d+/)?"
    r"(?P<public_id>.+)\.(?i:jpg|jpeg|png|webp|gif|avif)$",
)


class ImageShape(str, Enum):
    """Historical image shapes, decided once per raw element."""
    LEGACY_URL = "legacy_url"
    DUAL_RES = "dual_res"
    CANONICAL = "canonical"
    EMPTY = "empty"


@dataclass(frozen=True)
class ClassifiedImage:
    shape: ImageShape
    url: Optional[str] = None
    full: Optional[str] = None
    thumb: Optional[str] = None
    record: Optional[Mapping[str, Any]] = None


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def classify_image(raw: Any) -> ClassifiedImage:
    """Tag a raw ``images`` element with its shape."""
    if isinstance(raw, str):
        url = _non_empty_str(raw)
        if url:
            return ClassifiedImage(ImageShape.LEGACY_URL, url=url)
        return ClassifiedImage(ImageShape.EMPTY)

    if not isinstance(raw, Mapping):
        return ClassifiedImage(ImageShape.EMPTY)

    full = _non_empty_str(raw.get("full"))
    thumb = _non_empty_str(raw.get("thumb"))
    if full or thumb:
        return ClassifiedImage(ImageShape.DUAL_RES, full=full, thumb=thumb)

    if raw.get("variants") or raw.get("formats") or raw.get("publicId"):
        return ClassifiedImage(ImageShape.CANONICAL, record=raw)

    # {_id}-only stubs and anything else we do not recognize
    return ClassifiedImage(ImageShape.EMPTY)


def cloudinary_url(cloud_name: str, public_id: str, transform: str) -> str:
    return f"https://res.cloudinary.com/{cloud_name}/image/upload/{transform}/{public_id}"


def parse_cloudinary_url(url: str) -> Optional[Dict[str, str]]:
    """Return ``{"cloud": ..., "public_id": ...}`` for a Cloudinary upload URL."""
    match = _CLOUDINARY_UPLOAD_RE.search(url or "")
    if not match:
        return None
    return {"cloud": match.group("cloud"), "public_id": match.group("public_id")}


def variants_from_public_id(public_id: str, cloud_name: str) -> Dict[str, str]:
    return {slot: cloudinary_url(cloud_name, public_id, t) for slot, t in VARIANT_TRANSFORMS.items()}


def formats_from_public_id(public_id: str, cloud_name: str) -> Dict[str, str]:
    return {fmt: cloudinary_url(cloud_name, public_id, t) for fmt, t in FORMAT_TRANSFORMS.items()}


def placeholder_record(config: Optional[StorefrontConfig] = None) -> Dict[str, Any]:
    config = config or get_config()
    width, height = config.placeholder_width, config.placeholder_height
    return {
        "variants": {slot: config.placeholder_url for slot in VARIANT_SLOTS},
        "metadata": {
            "width": width,
            "height": height,
            "aspectRatio": width / height if height else 1,
        },
    }


def _legacy_record(variants: Dict[str, str], source_url: str, config: StorefrontConfig) -> Dict[str, Any]:
    """
    Build a record from legacy URLs. Uploads hosted on Cloudinary also get
    their publicId and the remaining variant slots and formats derived.
    """
    record: Dict[str, Any] = {"variants": dict(variants)}
    parsed = parse_cloudinary_url(source_url)
    if parsed is None:
        return record

    cloud = parsed["cloud"] or config.cloudinary_cloud_name
    public_id = parsed["public_id"]
    derived = variants_from_public_id(public_id, cloud)
    for slot in VARIANT_SLOTS:
        record["variants"].setdefault(slot, derived[slot])
    record["publicId"] = public_id
    record["formats"] = formats_from_public_id(public_id, cloud)
    return record


def to_canonical(image: ClassifiedImage, config: Optional[StorefrontConfig] = None) -> Dict[str, Any]:
    """Convert a classified image into a canonical record."""
    config = config or get_config()

    if image.shape is ImageShape.LEGACY_URL:
        return _legacy_record({"original": image.url}, image.url, config)

    if image.shape is ImageShape.DUAL_RES:
        variants = {"original": image.full or image.thumb}
        if image.thumb:
            variants["thumb"] = image.thumb
        return _legacy_record(variants, image.full or image.thumb, config)

    if image.shape is ImageShape.CANONICAL:
        record = copy.deepcopy(dict(image.record))
        metadata = record.get("metadata")
        metadata = dict(metadata) if isinstance(metadata, Mapping) else {}
        if metadata.get("aspectRatio") is None:
            metadata["aspectRatio"] = 1
        record["metadata"] = metadata
        return record

    return placeholder_record(config)


def normalize_image(raw: Any, config: Optional[StorefrontConfig] = None) -> Dict[str, Any]:
    return to_canonical(classify_image(raw), config)


def normalize_images(images: Any, config: Optional[StorefrontConfig] = None) -> List[Dict[str, Any]]:
    """
    Normalize a raw ``images`` field. The result has one record per input
    element, or a single placeholder when the field is empty or absent.
    """
    if images is None:
        raw_list: List[Any] = []
    elif isinstance(images, (list, tuple)):
        raw_list = list(images)
    else:
        raw_list = [images]

    if not raw_list:
        return [placeholder_record(config)]
    return [normalize_image(raw, config) for raw in raw_list]


def normalize_product_images(product: Any, config: Optional[StorefrontConfig] = None) -> Dict[str, Any]:
    """
    Return a copy of ``product`` (a mapping, or an object with ``to_dict``)
    whose ``images`` are canonical records. The input is left untouched.
    """
    if isinstance(product, Mapping):
        data = dict(product)
    elif hasattr(product, "to_dict"):
        data = product.to_dict()
    else:
        data = {"images": getattr(product, "images", None)}
    data["images"] = normalize_images(data.get("images"), config)
    return data


def primary_image_url(images: Any, config: Optional[StorefrontConfig] = None) -> str:
    """
    URL to show for a product in compact views: the first image's thumb,
    then its original, then "". A product with no images yields "".
    """
    if not images:
        return ""
    first = images[0] if isinstance(images, (list, tuple)) else images
    variants = normalize_image(first, config).get("variants")
    if not isinstance(variants, Mapping):
        return ""
    return variants.get("thumb") or variants.get("original") or ""
