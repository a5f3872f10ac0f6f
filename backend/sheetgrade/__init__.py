"""SheetGrade - AI-assisted answer sheet section re-evaluation."""

__version__ = "1.0.0"
