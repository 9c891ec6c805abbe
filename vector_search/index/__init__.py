"""
Index subpackage -- exact in-memory vector snapshot used for ranking.
"""

from vector_search.index.flat_index import FlatIndex
