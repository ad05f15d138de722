"""
Semantic analysis: map the relatedness of two documents through sentence
embeddings and pairwise cosine similarity.
"""
