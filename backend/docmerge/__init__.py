"""Template + CSV mail-merge service (docx/pptx -> docx/pptx/pdf/png/jpg)."""

__version__ = "0.1.0"
