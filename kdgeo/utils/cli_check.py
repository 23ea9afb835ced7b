"""
Module pour les tests de cohérence.
Compare la recherche dans l'arbre à une recherche exhaustive.
"""

import argparse

import numpy as np

from kdgeo.search.searcher import Searcher
from kdgeo.utils.cli_search import open_tree, resolve_search_params
from kdgeo.utils.config import ConfigManager


def check_command(args: argparse.Namespace) -> int:
    """
    Commande pour vérifier l'arbre contre la recherche exhaustive.

    La moitié des requêtes sont des points de l'arbre (en s'excluant eux-mêmes),
    l'autre moitié des positions aléatoires dans la boîte englobante.

    Args:
        args: Arguments de ligne de commande

    Returns:
        int: Code de retour (0 si aucune divergence, 1 sinon)
    """
    config_manager = ConfigManager(args.config)

    try:
        n_queries = args.queries if args.queries is not None else config_manager.get("search", "queries", 100)

        tree = open_tree(args.tree_file, config_manager)
        max_distance, weights = resolve_search_params(args, config_manager, tree)
        searcher = Searcher(tree, max_distance, weights, verbose=True)

        if tree.is_empty():
            print("⚠️ Arbre vide: rien à évaluer")
            return 0

        rng = np.random.default_rng(args.seed)
        coordinates = searcher.coordinates
        n_points = min(n_queries // 2 + n_queries % 2, len(searcher.nodes))
        picked = rng.choice(len(searcher.nodes), n_points, replace=False)

        queries = [coordinates[i].tolist() for i in picked]
        self_ids = [searcher.nodes[i].id for i in picked]

        low, high = coordinates.min(axis=0), coordinates.max(axis=0)
        for position in rng.uniform(low, high, size=(n_queries - n_points, len(tree.dimensions))):
            queries.append(position.tolist())
            self_ids.append(None)

        print(f"⏳ {len(queries)} requêtes ({n_points} points de l'arbre, {len(queries) - n_points} aléatoires)")
        results = searcher.evaluate_search(queries, self_ids=self_ids)

        if results["misses"] or results["worse"] or results["extra"]:
            print(f"❌ Divergences: manqués={results['misses']}, moins proches={results['worse']}, "
                  f"en trop={results['extra']}")
            return 1
        print("✓ L'arbre est cohérent avec la recherche exhaustive")

    except Exception as e:
        print(f"\n❌ Erreur: {str(e)}")
        return 1

    return 0
