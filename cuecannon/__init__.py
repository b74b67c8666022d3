"""CueCannon script ingestion.

Turns a batch of scanned script pages into a single plain-text script:
every image is recognised concurrently with Tesseract OCR and the texts
are merged in file-name order once the whole batch has resolved.
"""
