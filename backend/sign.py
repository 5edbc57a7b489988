import sys

from moneybuddy.services.square_verify import SIGNATURE_HEADER, compute_signature


def sign_body(body: str, secret: str) -> str:
    return compute_signature(body.encode("utf-8"), secret)


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python sign.py <payload_json> <signature_key>")
        sys.exit(1)

    body, secret = sys.argv[1], sys.argv[2]
    # Send the body byte-for-byte as given; the signature covers it exactly
    print(f"{SIGNATURE_HEADER}: {sign_body(body, secret)}")
