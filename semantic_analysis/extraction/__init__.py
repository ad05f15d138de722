"""
Document extraction boundary: turns source documents into cleaned sentence lists.
"""

from .extractors import extract_data_from_file
from .cleaning import clean_data, extract_sentences, save_data_to_json, analyze_json, load_sentence_file

__all__ = [
    'extract_data_from_file',
    'clean_data',
    'extract_sentences',
    'save_data_to_json',
    'analyze_json',
    'load_sentence_file',
]
