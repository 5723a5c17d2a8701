"""PDFStamp — overlay signature images on PDFs with a hash-based audit trail."""
