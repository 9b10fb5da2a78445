"""
Services Layer

Tournament and match operations. Services take stores (see stores.py) and a
RuleSet, return models or derived views, and raise TournamentError
subclasses; they never see HTTP request/response objects.
"""
