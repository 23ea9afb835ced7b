"""
Module de recherche pour KDGeo.
Recherche du plus proche voisin dans un rayon, avec pondération par dimension
et exclusion de soi-même.
"""

import math
import numbers
import time
from collections.abc import Mapping
from typing import List, Dict, Any, Optional, Sequence, Tuple, NamedTuple

import numpy as np
from joblib import Parallel, delayed
from tqdm.auto import tqdm

from kdgeo.core.errors import InvalidDistance, InvalidWeight, InvalidConfiguration
from kdgeo.core.tree import KDTree, KDNode, resolve_dimensions, read_coordinates
from kdgeo.search import trace as events
from kdgeo.search.trace import SearchTrace


class Neighbor(NamedTuple):
    """Résultat d'une recherche: le nœud retenu et sa distance pondérée à la requête."""

    node: KDNode
    distance: float

    @property
    def id(self) -> Any:
        return self.node.id

    @property
    def payload(self) -> Any:
        return self.node.payload

    @property
    def coordinates(self) -> Tuple[float, ...]:
        return self.node.coordinates


class NeighborPair(NamedTuple):
    """Un point de l'arbre et son plus proche voisin (None si aucun dans le rayon)."""

    id: Any
    payload: Any
    coordinates: Tuple[float, ...]
    neighbor: Optional[Neighbor]


def check_max_distance(max_distance: Any) -> float:
    """Valide la distance maximale: nombre fini strictement positif."""
    if isinstance(max_distance, bool) or not isinstance(max_distance, numbers.Real):
        raise InvalidDistance(f"Distance maximale non numérique: {max_distance!r}")
    max_distance = float(max_distance)
    if not math.isfinite(max_distance) or max_distance <= 0:
        raise InvalidDistance(f"La distance maximale doit être > 0, reçu {max_distance}")
    return max_distance


def resolve_weights(weights: Any, dimensions: Tuple[Any, ...]) -> Tuple[float, ...]:
    """
    Aligne les poids sur les dimensions de l'arbre.

    Args:
        weights: None (1.0 partout), mapping dimension -> poids (1.0 pour les absentes)
                 ou séquence alignée sur les dimensions
        dimensions: Dimensions de l'arbre

    Returns:
        Tuple[float, ...]: Un poids strictement positif par dimension
    """
    if weights is None:
        return (1.0,) * len(dimensions)

    if isinstance(weights, Mapping):
        unknown = [dim for dim in weights if dim not in dimensions]
        if unknown:
            raise InvalidConfiguration(f"Poids pour des dimensions inconnues: {unknown}")
        raw = [(dim, weights.get(dim, 1.0)) for dim in dimensions]
    else:
        weights = list(weights)
        if len(weights) != len(dimensions):
            raise InvalidConfiguration(
                f"{len(weights)} poids fournis pour {len(dimensions)} dimensions"
            )
        raw = list(zip(dimensions, weights))

    resolved = []
    for dim, weight in raw:
        if isinstance(weight, bool) or not isinstance(weight, numbers.Real):
            raise InvalidWeight(f"Poids non numérique pour '{dim}': {weight!r}")
        weight = float(weight)
        if not math.isfinite(weight) or weight <= 0:
            raise InvalidWeight(f"Le poids de '{dim}' doit être > 0, reçu {weight}")
        resolved.append(weight)
    return tuple(resolved)


def resolve_query(tree: KDTree, query: Any, dimensions: Optional[Sequence[Any]] = None) -> Tuple[float, ...]:
    """
    Convertit une requête en coordonnées alignées sur les dimensions de l'arbre.
    Une séquence est lue dans l'ordre de `dimensions`; un mapping ou un objet par nom.
    """
    if dimensions is None:
        dims = tree.dimensions
    else:
        dims = resolve_dimensions(dimensions)
        if set(dims) != set(tree.dimensions):
            raise InvalidConfiguration(
                f"Dimensions de requête {list(dims)} incompatibles avec l'arbre {list(tree.dimensions)}"
            )

    if isinstance(query, (Mapping, str, bytes)) or not isinstance(query, (Sequence, np.ndarray)):
        return read_coordinates(query, tree.dimensions)

    values = dict(zip(dims, read_coordinates(query, dims)))
    return tuple(values[dim] for dim in tree.dimensions)


def weighted_distance(query: Sequence[float], coordinates: Sequence[float], weights: Sequence[float]) -> float:
    """
    Distance pondérée: (somme des ((q - c) / w)^2) ^ (1 / K), K = nombre de dimensions.
    Pour K = 2 c'est la distance euclidienne pondérée; pour K != 2 la racine reste 1/K.
    """
    total = 0.0
    for q, c, w in zip(query, coordinates, weights):
        scaled = (q - c) / w
        total += scaled * scaled
    return total ** (1.0 / len(weights))


def _nearest(
    tree: KDTree,
    query: Tuple[float, ...],
    max_distance: float,
    weights: Tuple[float, ...],
    self_id: Any = None,
    trace: Optional[SearchTrace] = None
) -> Optional[Neighbor]:
    """Descente récursive sur des paramètres déjà validés."""
    limits = tuple(max_distance / w for w in weights)
    indices = range(len(query))

    def visit(node: KDNode, depth: int) -> Optional[Neighbor]:
        coordinates = node.coordinates
        candidates = []

        if self_id is not None and node.id == self_id:
            if trace is not None:
                trace.record(events.SELF_EXCLUDED, depth, node)
        elif all(abs(query[d] - coordinates[d]) <= limits[d] for d in indices):
            candidates.append(Neighbor(node, weighted_distance(query, coordinates, weights)))
            if trace is not None:
                trace.record(events.ADMITTED, depth, node, distance=candidates[0].distance)
        elif trace is not None:
            trace.record(events.REJECTED, depth, node)

        a = node.axis_index
        split = coordinates[a]
        lower = query[a] - limits[a]
        upper = query[a] + limits[a]

        if node.left is not None:
            if split >= lower:
                if trace is not None:
                    trace.record(events.VISIT_LEFT, depth, node, axis=node.axis, lower=lower)
                best = visit(node.left, depth + 1)
                if best is not None:
                    candidates.append(best)
            elif trace is not None:
                trace.record(events.SKIP_LEFT, depth, node, axis=node.axis, lower=lower)

        if node.right is not None:
            if split <= upper:
                if trace is not None:
                    trace.record(events.VISIT_RIGHT, depth, node, axis=node.axis, upper=upper)
                best = visit(node.right, depth + 1)
                if best is not None:
                    candidates.append(best)
            elif trace is not None:
                trace.record(events.SKIP_RIGHT, depth, node, axis=node.axis, upper=upper)

        # Ordre d'évaluation: nœud, meilleur à gauche, meilleur à droite; le premier gagne
        selected = None
        for candidate in candidates:
            if candidate.distance > max_distance:
                if trace is not None:
                    trace.record(events.OUT_OF_RANGE, depth, candidate.node, distance=candidate.distance)
                continue
            if selected is None or candidate.distance < selected.distance:
                selected = candidate

        if trace is not None:
            if selected is None:
                trace.record(events.NO_CANDIDATE, depth, node)
            else:
                trace.record(events.SELECTED, depth, selected.node, distance=selected.distance)
        return selected

    if tree.root is None:
        return None
    return visit(tree.root, 0)


def search(
    tree: KDTree,
    query: Any,
    dimensions: Optional[Sequence[Any]],
    max_distance: float,
    weights: Any = None,
    self_id: Any = None,
    trace: Optional[SearchTrace] = None
) -> Optional[Neighbor]:
    """
    Recherche le point le plus proche de la requête dans le rayon max_distance.

    Un nœud est candidat s'il n'est pas la requête elle-même (self_id) et si, sur
    chaque dimension d, |query[d] - node[d]| <= max_distance / weights[d]. Les
    sous-arbres sont élagués sur l'axe du nœud avec la même demi-largeur. Parmi
    les candidats dont la distance pondérée est <= max_distance, le plus proche
    est retenu; à égalité, le premier rencontré en parcours préfixe l'emporte.

    Args:
        tree: Arbre construit par build_tree
        query: Coordonnées (séquence alignée sur `dimensions`, mapping ou objet)
        dimensions: Ordre des coordonnées de la requête (None: dimensions de l'arbre)
        max_distance: Distance maximale, strictement positive
        weights: Poids par dimension (mapping ou séquence), 1.0 par défaut
        self_id: Identifiant à exclure des candidats
        trace: Collecteur d'événements de diagnostic (optionnel)

    Returns:
        Optional[Neighbor]: Le plus proche voisin, ou None
    """
    max_distance = check_max_distance(max_distance)
    weights = resolve_weights(weights, tree.dimensions)
    coordinates = resolve_query(tree, query, dimensions)
    return _nearest(tree, coordinates, max_distance, weights, self_id, trace)


def _nearest_chunk(tree: KDTree, max_distance: float, weights: Tuple[float, ...],
                   positions: List[int]) -> List[Tuple[int, Optional[int], Optional[float]]]:
    """Tâche de travail: plus proches voisins pour une tranche de nœuds (indices préfixes)."""
    nodes = list(tree)
    index_of = {id(node): i for i, node in enumerate(nodes)}
    results = []
    for position in positions:
        node = nodes[position]
        best = _nearest(tree, node.coordinates, max_distance, weights, self_id=node.id)
        if best is None:
            results.append((position, None, None))
        else:
            results.append((position, index_of[id(best.node)], best.distance))
    return results


class Searcher:
    """
    Classe principale pour la recherche répétée dans un arbre KDGeo.
    Valide une seule fois la distance et les poids, puis répond aux requêtes.
    """

    def __init__(self, tree: KDTree, max_distance: float, weights: Any = None,
                 n_jobs: int = 1, verbose: bool = False):
        """
        Initialise le chercheur.

        Args:
            tree: Arbre construit par build_tree
            max_distance: Distance maximale, strictement positive
            weights: Poids par dimension (mapping ou séquence), 1.0 par défaut
            n_jobs: Nombre de processus pour nearest_neighbors (joblib)
            verbose: Afficher les messages de progression
        """
        self.tree = tree
        self.max_distance = check_max_distance(max_distance)
        self.weights = resolve_weights(weights, tree.dimensions)
        self.limits = np.array([self.max_distance / w for w in self.weights], dtype=np.float64)
        self.n_jobs = n_jobs
        self.verbose = verbose

        # Vue préfixe de l'arbre pour la recherche exhaustive
        self.nodes = list(tree)
        self.coordinates = tree.coordinates_array()

    def nearest(self, query: Any, self_id: Any = None, trace: Optional[SearchTrace] = None,
                dimensions: Optional[Sequence[Any]] = None) -> Optional[Neighbor]:
        """
        Plus proche voisin dans l'arbre.

        Args:
            query: Coordonnées de la requête
            self_id: Identifiant à exclure
            trace: Collecteur d'événements (optionnel)
            dimensions: Ordre des coordonnées de la requête (None: dimensions de l'arbre)

        Returns:
            Optional[Neighbor]: Le plus proche voisin, ou None
        """
        coordinates = resolve_query(self.tree, query, dimensions)
        return _nearest(self.tree, coordinates, self.max_distance, self.weights, self_id, trace)

    def brute_force_search(self, query: Any, self_id: Any = None,
                           dimensions: Optional[Sequence[Any]] = None) -> Optional[Neighbor]:
        """
        Recherche exhaustive avec les mêmes règles d'admission que l'arbre.
        À distance égale, le premier nœud en parcours préfixe est retenu, comme dans l'arbre.

        Args:
            query: Coordonnées de la requête
            self_id: Identifiant à exclure
            dimensions: Ordre des coordonnées de la requête

        Returns:
            Optional[Neighbor]: Le plus proche voisin, ou None
        """
        if not self.nodes:
            return None

        q = np.asarray(resolve_query(self.tree, query, dimensions), dtype=np.float64)
        diff = q - self.coordinates

        mask = np.all(np.abs(diff) <= self.limits, axis=1)
        if self_id is not None:
            mask &= np.array([node.id != self_id for node in self.nodes], dtype=bool)

        scaled = diff / np.asarray(self.weights, dtype=np.float64)
        distances = np.sum(scaled * scaled, axis=1) ** (1.0 / len(self.weights))
        mask &= distances <= self.max_distance

        candidates = np.flatnonzero(mask)
        if candidates.size == 0:
            return None

        best = candidates[np.argmin(distances[candidates])]
        return Neighbor(self.nodes[best], float(distances[best]))

    def nearest_neighbors(self, show_progress: bool = False) -> List[NeighborPair]:
        """
        Plus proche voisin de chaque point de l'arbre, en s'excluant lui-même.
        Les points doivent porter un identifiant.

        Args:
            show_progress: Afficher une barre de progression

        Returns:
            List[NeighborPair]: Un couple par point, en parcours préfixe
        """
        missing = sum(1 for node in self.nodes if node.id is None)
        if missing:
            raise InvalidConfiguration(
                f"{missing} point(s) sans identifiant: impossible de s'exclure soi-même"
            )

        start_time = time.time()
        if self.verbose:
            print(f"⏳ Recherche des plus proches voisins de {len(self.nodes):,} points "
                  f"(max_distance={self.max_distance}, n_jobs={self.n_jobs})...")

        if self.n_jobs == 1:
            results = []
            iterator = tqdm(self.nodes, desc="Plus proches voisins") if show_progress else self.nodes
            for node in iterator:
                best = _nearest(self.tree, node.coordinates, self.max_distance, self.weights, self_id=node.id)
                results.append(NeighborPair(node.id, node.payload, node.coordinates, best))
        else:
            positions = list(range(len(self.nodes)))
            n_chunks = max(1, min(len(positions), 4 * abs(self.n_jobs)))
            chunks = [chunk.tolist() for chunk in np.array_split(positions, n_chunks) if len(chunk)]

            chunk_results = Parallel(n_jobs=self.n_jobs, verbose=10 if show_progress else 0)(
                delayed(_nearest_chunk)(self.tree, self.max_distance, self.weights, chunk)
                for chunk in chunks
            )

            results = [None] * len(self.nodes)
            for chunk in chunk_results:
                for position, neighbor_position, distance in chunk:
                    node = self.nodes[position]
                    best = None
                    if neighbor_position is not None:
                        best = Neighbor(self.nodes[neighbor_position], distance)
                    results[position] = NeighborPair(node.id, node.payload, node.coordinates, best)

        if self.verbose:
            found = sum(1 for pair in results if pair.neighbor is not None)
            elapsed = time.time() - start_time
            print(f"✓ {found:,}/{len(results):,} points ont un voisin dans le rayon [terminé en {elapsed:.2f}s]")

        return results

    def evaluate_search(self, queries: Sequence[Any], self_ids: Optional[Sequence[Any]] = None,
                        show_progress: bool = True) -> Dict[str, Any]:
        """
        Compare la recherche dans l'arbre à la recherche exhaustive.

        Args:
            queries: Coordonnées des requêtes
            self_ids: Identifiant à exclure pour chaque requête (optionnel)
            show_progress: Afficher une barre de progression

        Returns:
            Dict[str, Any]: Dictionnaire de métriques; `misses`, `worse` et `extra` listent
            les indices de requêtes où l'arbre diverge de la recherche exhaustive
            (voisin manqué, moins proche, ou hors du rayon selon la recherche exhaustive)
        """
        if self_ids is None:
            self_ids = [None] * len(queries)
        if len(self_ids) != len(queries):
            raise InvalidConfiguration("self_ids doit avoir la même longueur que queries")

        if self.verbose:
            print(f"\n⏳ Évaluation avec {len(queries)} requêtes, max_distance={self.max_distance}...")

        tree_search_time = 0.0
        naive_search_time = 0.0
        found = 0
        agreements = 0
        misses = []
        worse = []
        extra = []

        pairs = list(zip(queries, self_ids))
        iterator = tqdm(pairs, desc="Évaluation") if show_progress else pairs
        for i, (query, self_id) in enumerate(iterator):
            start_time = time.time()
            tree_result = self.nearest(query, self_id=self_id)
            tree_search_time += time.time() - start_time

            start_time = time.time()
            naive_result = self.brute_force_search(query, self_id=self_id)
            naive_search_time += time.time() - start_time

            if tree_result is not None:
                found += 1

            if naive_result is None:
                if tree_result is None:
                    agreements += 1
                else:
                    extra.append(i)
                continue
            if tree_result is None:
                misses.append(i)
                continue

            tolerance = 1e-9 * max(1.0, naive_result.distance)
            if tree_result.distance > naive_result.distance + tolerance:
                worse.append(i)
            else:
                agreements += 1

        n_queries = len(queries)
        avg_tree_time = tree_search_time / n_queries if n_queries else 0.0
        avg_naive_time = naive_search_time / n_queries if n_queries else 0.0
        speedup = avg_naive_time / avg_tree_time if avg_tree_time > 0 else 0.0

        if self.verbose:
            print("\n✓ Résultats de l'évaluation:")
            print(f"  - Nombre de requêtes     : {n_queries}")
            print(f"  - Voisins trouvés        : {found}")
            print(f"  - Accords avec le naïf   : {agreements}")
            print(f"  - Voisins manqués        : {len(misses)}")
            print(f"  - Voisins moins proches  : {len(worse)}")
            print(f"  - Voisins en trop        : {len(extra)}")
            print(f"  - Temps moyen (arbre)    : {avg_tree_time*1000:.3f} ms")
            print(f"  - Temps moyen (naïf)     : {avg_naive_time*1000:.3f} ms")
            print(f"  - Accélération           : {speedup:.2f}x")
            divergences = len(misses) + len(worse) + len(extra)
            if divergences:
                print(f"⚠️ L'arbre diverge de la recherche exhaustive sur {divergences} requête(s)")

        return {
            "n_queries": n_queries,
            "found": found,
            "agreements": agreements,
            "misses": misses,
            "worse": worse,
            "extra": extra,
            "avg_tree_time": avg_tree_time,
            "avg_naive_time": avg_naive_time,
            "speedup": speedup,
        }
