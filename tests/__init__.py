"""
Test suite for the product data interchange service.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_csv_tokenizer.py -v
"""
