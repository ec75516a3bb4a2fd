"""API gateway for the users and products services.

Fronts both backends behind one HTTP surface and provides:
 - transparent single-resource proxying
 - cross-service joins (dashboard, product with owner, user with products)
 - an aggregated health view with partial-failure reporting

Every backend call returns a ProxyResult instead of raising, so the joiners
can branch on outcomes directly.
"""
