"""
Raster image helpers for the reconstruction pipeline.

Provides:
- Channel normalization to opaque BGR
- Alpha flattening onto a white background
- PIL <-> numpy conversion
- PNG encoding for the visible page layer
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


# ============================================================================
# Channel Handling
# ============================================================================

def flatten_onto_white(image: np.ndarray) -> np.ndarray:
    """
    Composite a BGRA image onto an opaque white background.

    Un-inked regions of a transparent render would otherwise come out black
    once the alpha channel is dropped, which wrecks recognition contrast.

    Args:
        image: BGRA image (H x W x 4)

    Returns:
        Opaque BGR image (H x W x 3, uint8)
    """
    if image.ndim != 3 or image.shape[2] != 4:
        raise ValueError(f"Expected a BGRA image, got shape {image.shape}")

    bgr = image[:, :, :3].astype(np.float32)
    alpha = image[:, :, 3:4].astype(np.float32) / 255.0
    white = np.full_like(bgr, 255.0)
    out = bgr * alpha + white * (1.0 - alpha)
    return np.clip(out + 0.5, 0, 255).astype(np.uint8)


def to_opaque_bgr(image: np.ndarray) -> np.ndarray:
    """
    Normalize any decoded image to opaque 3-channel BGR.

    Args:
        image: Grayscale, BGR or BGRA image

    Returns:
        BGR image (H x W x 3, uint8)
    """
    import cv2

    if image.dtype != np.uint8:
        # 16-bit PNG/TIFF scans
        image = cv2.convertScaleAbs(image, alpha=255.0 / max(float(image.max()), 1.0))

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3:
        channels = image.shape[2]
        if channels == 1:
            return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        if channels == 3:
            return image
        if channels == 4:
            return flatten_onto_white(image)

    raise ValueError(f"Unexpected image shape: {image.shape}")


def pil_to_bgr(pil_image) -> np.ndarray:
    """
    Convert a PIL image to an opaque BGR numpy array.

    Transparent modes are flattened onto white first.
    """
    if pil_image.mode in ("RGBA", "LA", "PA") or (
        pil_image.mode == "P" and "transparency" in pil_image.info
    ):
        rgba = np.array(pil_image.convert("RGBA"))
        # RGBA -> BGRA
        return flatten_onto_white(rgba[:, :, [2, 1, 0, 3]].copy())

    rgb = np.array(pil_image.convert("RGB"))
    return rgb[:, :, ::-1].copy()


# ============================================================================
# Encoding
# ============================================================================

def encode_png(image: np.ndarray) -> bytes:
    """
    Encode an image array as PNG bytes.

    Raises:
        ValueError: If OpenCV cannot encode the array
    """
    import cv2

    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise ValueError(f"Could not encode image of shape {image.shape} as PNG")
    return buffer.tobytes()


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode image bytes (PNG, JPEG, TIFF, BMP) to opaque BGR.

    Raises:
        ValueError: If the bytes are not a decodable image
    """
    import cv2

    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError("Could not decode image bytes")
    return to_opaque_bgr(image)
