"""
QR code rendering for log output.
"""

import qrcode


def generate_qr_ascii(data: str, border: int = 1) -> str:
    """Render data as a block-character QR code, two characters per module"""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=1,
        border=border
    )
    qr.add_data(data)
    qr.make(fit=True)

    lines = []
    for row in qr.get_matrix():
        lines.append(''.join('██' if cell else '  ' for cell in row))
    return '\n'.join(lines)
