"""
Generate a VAPID key pair for Web Push notifications.

    python scripts/generate_vapid_keys.py

Both keys are printed as unpadded base64url strings, the format browsers
expect for applicationServerKey and pywebpush accepts as vapid_private_key.
"""
import base64

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def generate_vapid_keys() -> tuple[str, str]:
    """Return (public_key, private_key) for a fresh P-256 key pair."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_raw = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    private_raw = private_key.private_numbers().private_value.to_bytes(32, "big")
    return _b64url(public_raw), _b64url(private_raw)


if __name__ == "__main__":
    public_key, private_key = generate_vapid_keys()
    print("Add these to the server environment:\n")
    print(f"VAPID_PUBLIC_KEY={public_key}")
    print(f"VAPID_PRIVATE_KEY={private_key}")
    print("\nVAPID_PUBLIC_KEY is served to browsers; keep VAPID_PRIVATE_KEY secret.")
