"""Namespace for model-callable tools; it currently holds no modules."""