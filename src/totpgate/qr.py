"""Render provisioning URIs as QR codes for authenticator apps to scan."""

from __future__ import annotations

import base64
import io

import qrcode


def _build(uri: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(version=None, box_size=10, border=4)
    qr.add_data(uri)
    qr.make(fit=True)
    return qr


def png_bytes(uri: str) -> bytes:
    img = _build(uri).make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri(uri: str) -> str:
    """PNG QR code as a data: URI, ready for an <img src>."""
    return f"data:image/png;base64,{base64.b64encode(png_bytes(uri)).decode()}"


def terminal(uri: str) -> str:
    """QR code drawn with block characters, for printing to a terminal."""
    buffer = io.StringIO()
    _build(uri).print_ascii(out=buffer, invert=True)
    return buffer.getvalue()
