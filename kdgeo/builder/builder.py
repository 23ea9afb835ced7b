"""
Constructeur d'arbres KDGeo.
Partitionne récursivement les points sur la médiane d'une dimension tournante.
"""

import os
import time
from collections.abc import Mapping
from typing import Optional, Dict, Any, Sequence, Callable, Union, List, Tuple

from kdgeo.core.tree import KDTree, KDNode, Point, resolve_dimensions, read_coordinates

IdSelector = Union[str, Callable[[Any], Any], None]

# (indice d'insertion, coordonnées, identifiant, enregistrement)
_Item = Tuple[int, Tuple[float, ...], Any, Any]


def _make_id_getter(id_selector: IdSelector) -> Callable[[Any], Any]:
    if id_selector is None:
        return lambda record: record.id if isinstance(record, Point) else None
    if callable(id_selector):
        return id_selector

    def get_field(record):
        if isinstance(record, Point):
            return record.id
        if isinstance(record, Mapping):
            return record.get(id_selector)
        return getattr(record, id_selector, None)

    return get_field


def _prepare_items(points: Sequence[Any], dimensions: Tuple[Any, ...], id_selector: IdSelector) -> List[_Item]:
    """Lit une seule fois les coordonnées de chaque point, hors du chemin récursif."""
    get_id = _make_id_getter(id_selector)
    items = []
    for index, record in enumerate(points):
        coordinates = read_coordinates(record, dimensions)
        payload = record
        if isinstance(record, Point) and record.payload is not None:
            payload = record.payload
        items.append((index, coordinates, get_id(record), payload))
    return items


def _build_node(items: List[_Item], dimensions: Tuple[Any, ...], depth: int) -> Optional[KDNode]:
    if not items:
        return None

    axis_index = depth % len(dimensions)

    # Égalités départagées par l'ordre d'insertion d'origine
    ordered = sorted(items, key=lambda item: (item[1][axis_index], item[0]))
    median = len(ordered) // 2
    _, coordinates, point_id, payload = ordered[median]

    return KDNode(
        axis=dimensions[axis_index],
        axis_index=axis_index,
        coordinates=coordinates,
        id=point_id,
        payload=payload,
        left=_build_node(ordered[:median], dimensions, depth + 1),
        right=_build_node(ordered[median + 1:], dimensions, depth + 1),
        dimensions=dimensions,
    )


def build_tree(
    points: Sequence[Any],
    dimensions: Sequence[Any],
    id_selector: IdSelector = None,
    verbose: bool = False
) -> KDTree:
    """
    Construit un arbre KDGeo équilibré.

    L'axe de séparation à la profondeur d est dimensions[d mod K]. À chaque niveau,
    les points sont triés sur l'axe courant (égalités dans l'ordre d'insertion),
    le point d'indice count // 2 devient le nœud, les précédents forment le
    sous-arbre gauche et les suivants le sous-arbre droit. La séparation se fait
    par indice: la hauteur vaut toujours ceil(log2(n + 1)), même avec des doublons.

    Args:
        points: Enregistrements (dict, objets ou Point) exposant chaque dimension
        dimensions: Liste ordonnée et non vide des dimensions
        id_selector: Nom du champ identifiant, ou fonction enregistrement -> identifiant
        verbose: Afficher les messages de progression

    Returns:
        KDTree: Arbre construit (vide si aucun point)
    """
    dims = resolve_dimensions(dimensions)
    start_time = time.time()

    items = _prepare_items(points, dims, id_selector)
    if verbose:
        print(f"⏳ Construction de l'arbre sur {len(items):,} points (dimensions {list(dims)})...")

    tree = KDTree(dims, _build_node(items, dims, 0))

    if verbose:
        elapsed = time.time() - start_time
        print(f"✓ Arbre construit en {elapsed:.2f}s: {len(items):,} nœuds, hauteur {tree.get_height()}")
    return tree


def build_tree_from_file(
    points_file: str,
    output_file: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
    dimensions: Optional[Sequence[Any]] = None,
    id_field: Optional[str] = None,
    verbose: bool = True
) -> KDTree:
    """
    Construit un arbre depuis un fichier de points et le sauvegarde.

    Cette fonction fait tout:
    1. Chargement de la configuration
    2. Lecture des points (JSON ou CSV)
    3. Construction de l'arbre
    4. Sauvegarde de l'arbre si un fichier de sortie est donné

    Args:
        points_file: Fichier JSON ou CSV contenant les points
        output_file: Fichier de sortie pour l'arbre (facultatif)
        config: Configuration personnalisée (facultatif, sinon utilise config.yaml)
        dimensions: Dimensions à indexer (facultatif)
        id_field: Champ identifiant des points (facultatif)
        verbose: Afficher les messages de progression

    Returns:
        KDTree: L'arbre construit
    """
    from kdgeo.io.reader import read_points
    from kdgeo.io.writer import save_tree

    if config is None:
        from kdgeo.utils.config import ConfigManager
        build_config = ConfigManager().get_section("build_tree")
    else:
        build_config = config.get("build_tree", {})

    dimensions = dimensions if dimensions is not None else build_config.get("dimensions", ["Lat", "Long"])
    id_field = id_field if id_field is not None else build_config.get("id_field", "id")

    points = read_points(points_file, dimensions, id_field=id_field, verbose=verbose)
    tree = build_tree(points, dimensions, id_selector=id_field or None, verbose=verbose)

    if output_file:
        os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)
        save_tree(tree, output_file, verbose=verbose)

    return tree
