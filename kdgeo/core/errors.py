"""
Exceptions de KDGeo.
Chaque condition d'erreur de construction ou de recherche a sa propre classe.
"""


class KDGeoError(Exception):
    """Exception de base pour toutes les erreurs KDGeo."""

    pass


class MissingDimension(KDGeoError, KeyError):
    """Un point ou une requête n'expose pas de valeur numérique pour une dimension."""

    def __init__(self, dimension, record=None):
        self.dimension = dimension
        self.record = record
        super().__init__(f"Valeur manquante ou non numérique pour la dimension '{dimension}'")

    def __str__(self) -> str:
        # KeyError entoure le message de guillemets par défaut
        return self.args[0]


class InvalidDistance(KDGeoError, ValueError):
    """La distance maximale doit être un nombre fini strictement positif."""

    pass


class InvalidWeight(KDGeoError, ValueError):
    """Un poids de dimension doit être un nombre fini strictement positif."""

    pass


class InvalidConfiguration(KDGeoError, ValueError):
    """Liste de dimensions vide, dupliquée ou incompatible avec l'arbre."""

    pass
