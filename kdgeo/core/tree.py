"""
Module de structures d'arbre pour KDGeo.
Définit les points, les nœuds et l'arbre K-dimensionnel immuable.
"""

import math
import numbers
from collections.abc import Mapping
from typing import List, Any, Optional, Dict, Iterator, Sequence, Tuple

import numpy as np

from kdgeo.core.errors import MissingDimension, InvalidConfiguration


class Point:
    """
    Point d'entrée explicite: coordonnées ordonnées, identifiant et enregistrement d'origine.
    Les coordonnées sont alignées sur la liste de dimensions passée au constructeur d'arbre.
    """

    __slots__ = ("coordinates", "id", "payload")

    def __init__(self, coordinates: Sequence[float], id: Any = None, payload: Any = None):
        self.coordinates = tuple(coordinates)
        self.id = id
        self.payload = payload

    def __repr__(self) -> str:
        return f"Point(coordinates={self.coordinates}, id={self.id!r})"


def resolve_dimensions(dimensions: Sequence[Any]) -> Tuple[Any, ...]:
    """
    Valide une liste ordonnée d'identifiants de dimensions.

    Args:
        dimensions: Identifiants des dimensions (ex: ["Lat", "Long"])

    Returns:
        Tuple: Les dimensions sous forme de tuple immuable
    """
    if dimensions is None or isinstance(dimensions, (str, bytes)):
        raise InvalidConfiguration("Les dimensions doivent être une liste ordonnée d'identifiants")

    dims = tuple(dimensions)
    if not dims:
        raise InvalidConfiguration("La liste des dimensions ne peut pas être vide")
    if len(set(dims)) != len(dims):
        raise InvalidConfiguration(f"Dimensions dupliquées: {list(dims)}")
    return dims


def dimension_index(dimensions: Tuple[Any, ...], dimension: Any) -> int:
    """Position d'une dimension dans la liste ordonnée (InvalidConfiguration si inconnue)."""
    try:
        return dimensions.index(dimension)
    except ValueError:
        raise InvalidConfiguration(f"Dimension inconnue: {dimension!r} (dimensions {list(dimensions)})") from None


def as_coordinate(value: Any, dimension: Any, record: Any = None) -> float:
    """Convertit une valeur en coordonnée, ou lève MissingDimension."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MissingDimension(dimension, record)
    value = float(value)
    if math.isnan(value):
        raise MissingDimension(dimension, record)
    return value


def read_coordinate(record: Any, dimension: Any) -> float:
    """
    Lit la valeur d'une dimension sur un enregistrement (mapping ou objet).

    Args:
        record: Dictionnaire ou objet exposant la dimension
        dimension: Identifiant de la dimension

    Returns:
        float: Valeur de la coordonnée
    """
    if isinstance(record, Mapping):
        if dimension not in record:
            raise MissingDimension(dimension, record)
        value = record[dimension]
    else:
        try:
            value = getattr(record, dimension)
        except (AttributeError, TypeError):
            raise MissingDimension(dimension, record) from None
    return as_coordinate(value, dimension, record)


def read_coordinates(record: Any, dimensions: Sequence[Any]) -> Tuple[float, ...]:
    """
    Extrait toutes les coordonnées d'un enregistrement, dans l'ordre des dimensions.
    Accepte un Point, une séquence alignée sur les dimensions, un mapping ou un objet.
    """
    if isinstance(record, Point):
        record = record.coordinates

    if isinstance(record, (Sequence, np.ndarray)) and not isinstance(record, (str, bytes)):
        if len(record) < len(dimensions):
            raise MissingDimension(dimensions[len(record)], record)
        if len(record) > len(dimensions):
            raise InvalidConfiguration(
                f"{len(record)} coordonnées fournies pour {len(dimensions)} dimensions"
            )
        return tuple(as_coordinate(value, dim, record) for dim, value in zip(dimensions, record))

    return tuple(read_coordinate(record, dim) for dim in dimensions)


class KDNode:
    """
    Nœud de l'arbre KDGeo.
    Porte le point médian de son sous-ensemble et la dimension utilisée pour la séparation.
    """

    __slots__ = ("axis", "axis_index", "coordinates", "id", "payload", "left", "right", "dimensions")

    def __init__(self, axis: Any, axis_index: int, coordinates: Tuple[float, ...],
                 id: Any = None, payload: Any = None,
                 left: Optional["KDNode"] = None, right: Optional["KDNode"] = None,
                 dimensions: Tuple[Any, ...] = ()):
        """
        Initialise un nœud.

        Args:
            axis: Dimension de séparation de ce nœud
            axis_index: Position de cette dimension dans la liste des dimensions
            coordinates: Copie des coordonnées du point médian (toutes les dimensions)
            id: Identifiant du point médian (optionnel)
            payload: Enregistrement d'origine
            left: Sous-arbre gauche (valeurs <= sur l'axe)
            right: Sous-arbre droit (valeurs >= sur l'axe)
            dimensions: Dimensions de l'arbre, partagées par tous ses nœuds
        """
        self.axis = axis
        self.axis_index = axis_index
        self.coordinates = coordinates
        self.id = id
        self.payload = payload
        self.left = left
        self.right = right
        self.dimensions = dimensions

    def value(self, dimension: Any) -> float:
        """
        Coordonnée du nœud sur une dimension nommée.

        Args:
            dimension: Identifiant de la dimension

        Returns:
            float: Valeur mise en cache à la construction
        """
        return self.coordinates[dimension_index(self.dimensions, dimension)]

    def is_leaf(self) -> bool:
        """Vérifie si ce nœud n'a aucun enfant."""
        return self.left is None and self.right is None

    def children(self) -> List["KDNode"]:
        """Enfants présents, gauche d'abord."""
        return [child for child in (self.left, self.right) if child is not None]

    def get_size(self) -> int:
        """
        Calcule la taille du sous-arbre enraciné à ce nœud.

        Returns:
            int: Nombre total de nœuds dans le sous-arbre
        """
        size = 1
        for child in self.children():
            size += child.get_size()
        return size

    def __iter__(self) -> Iterator["KDNode"]:
        """Parcours préfixe du sous-arbre (nœud, gauche, droite)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)

    def __repr__(self) -> str:
        return f"KDNode(id={self.id!r}, axis={self.axis!r}, coordinates={self.coordinates})"


class KDTree:
    """
    Arbre K-dimensionnel immuable.
    Vide (root=None) ou enraciné sur un KDNode; n'est jamais modifié après construction.
    """

    def __init__(self, dimensions: Sequence[Any], root: Optional[KDNode] = None):
        """
        Initialise un arbre.

        Args:
            dimensions: Liste ordonnée des dimensions utilisées à la construction
            root: Nœud racine (None pour un arbre vide)
        """
        self.dimensions = resolve_dimensions(dimensions)
        self.root = root

    def is_empty(self) -> bool:
        return self.root is None

    def __len__(self) -> int:
        return self.get_node_count()

    def __iter__(self) -> Iterator[KDNode]:
        if self.root is None:
            return iter(())
        return iter(self.root)

    def get_height(self) -> int:
        """
        Calcule la hauteur de l'arbre (nombre de nœuds sur le plus long chemin).

        Returns:
            int: Hauteur de l'arbre (0 pour un arbre vide)
        """
        if self.root is None:
            return 0

        def get_node_height(node: Optional[KDNode]) -> int:
            if node is None:
                return 0
            return 1 + max(get_node_height(node.left), get_node_height(node.right))

        return get_node_height(self.root)

    def get_node_count(self) -> int:
        if self.root is None:
            return 0
        return self.root.get_size()

    def find(self, id: Any) -> Optional[KDNode]:
        """Retrouve le nœud portant cet identifiant (parcours complet)."""
        for node in self:
            if node.id == id:
                return node
        return None

    def coordinates_array(self) -> np.ndarray:
        """
        Coordonnées de tous les nœuds en parcours préfixe.

        Returns:
            np.ndarray: Tableau de forme (n, K) en float64
        """
        k = len(self.dimensions)
        if self.root is None:
            return np.empty((0, k), dtype=np.float64)
        return np.array([node.coordinates for node in self], dtype=np.float64).reshape(-1, k)

    def validate(self) -> None:
        """
        Vérifie l'invariant de séparation sur tout l'arbre.
        Lève AssertionError en nommant le premier nœud fautif.
        """
        for node in self:
            a = node.axis_index
            split = node.coordinates[a]
            if node.left is not None:
                for descendant in node.left:
                    if descendant.coordinates[a] > split:
                        raise AssertionError(
                            f"{descendant!r} à gauche de {node!r} dépasse {split} sur {node.axis!r}"
                        )
            if node.right is not None:
                for descendant in node.right:
                    if descendant.coordinates[a] < split:
                        raise AssertionError(
                            f"{descendant!r} à droite de {node!r} est inférieur à {split} sur {node.axis!r}"
                        )

    def get_statistics(self) -> Dict[str, Any]:
        """
        Calcule diverses statistiques sur l'arbre.

        Returns:
            Dict: Dictionnaire de statistiques
        """
        if self.root is None:
            return {"error": "Arbre vide", "node_count": 0, "dimensions": list(self.dimensions)}

        stats = {
            "dimensions": list(self.dimensions),
            "node_count": 0,
            "leaf_count": 0,
            "height": 0,
            "min_leaf_depth": float('inf'),
            "avg_leaf_depth": 0,
            "leaf_depths": [],
            "axis_counts": {dim: 0 for dim in self.dimensions},
            "nodes_with_id": 0,
        }

        def traverse(node: KDNode, depth: int) -> None:
            stats["node_count"] += 1
            stats["height"] = max(stats["height"], depth + 1)
            stats["axis_counts"][node.axis] += 1
            if node.id is not None:
                stats["nodes_with_id"] += 1

            if node.is_leaf():
                stats["leaf_count"] += 1
                stats["min_leaf_depth"] = min(stats["min_leaf_depth"], depth)
                stats["leaf_depths"].append(depth)
            else:
                for child in node.children():
                    traverse(child, depth + 1)

        traverse(self.root, 0)

        if stats["leaf_count"] > 0:
            stats["avg_leaf_depth"] = sum(stats["leaf_depths"]) / stats["leaf_count"]

        return stats

    def save_statistics(self, file_path: str) -> None:
        """
        Sauvegarde les statistiques de l'arbre dans un fichier texte.

        Args:
            file_path: Chemin du fichier de sortie
        """
        stats = self.get_statistics()

        with open(file_path, "w", encoding="utf-8") as f:
            f.write("STATISTIQUES DE L'ARBRE KDGEO\n")
            f.write("=============================\n\n")
            f.write(f"Dimensions            : {', '.join(str(d) for d in stats['dimensions'])}\n")
            f.write(f"Nombre total de nœuds : {stats['node_count']}\n")
            if stats["node_count"] == 0:
                return
            f.write(f"Nombre de feuilles    : {stats['leaf_count']}\n")
            f.write(f"Hauteur               : {stats['height']}\n")
            f.write(f"Profondeur min feuille: {stats['min_leaf_depth']}\n")
            f.write(f"Profondeur moy feuille: {stats['avg_leaf_depth']:.2f}\n\n")

            f.write("Séparations par dimension\n")
            f.write("-------------------------\n")
            for dim, count in stats["axis_counts"].items():
                f.write(f"  {dim}: {count} nœuds\n")

    def __str__(self) -> str:
        """Représentation sous forme de chaîne pour le débogage."""
        if self.root is None:
            return f"KDTree(dimensions={list(self.dimensions)}, empty)"
        return (f"KDTree(dimensions={list(self.dimensions)}, "
                f"nodes={self.get_node_count()}, "
                f"height={self.get_height()})")
