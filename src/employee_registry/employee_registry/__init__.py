"""Employee Registry package.

Issues checksummed employee identifiers and the QR/barcode proofs derived from
them. Organized by feature modules (identifiers, employees, proofs, photos)
with a thin Flask controller layer over service/repository layers.
"""
