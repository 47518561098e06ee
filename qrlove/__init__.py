"""QRLove: páginas comemorativas com QR code para casais."""
