"""
AI assessment services.

``openai_service`` grades answers and powers the tutor; ``huggingface``
runs the emotion, sentiment and content models; ``text_metrics`` holds the
lexical heuristics both rely on.
"""
