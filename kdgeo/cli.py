"""
Interface en ligne de commande pour KDGeo.
Fournit des commandes pour construire un arbre, chercher les plus proches voisins
et vérifier la recherche contre une recherche exhaustive.
"""

import sys
import argparse

from kdgeo.utils.config import ConfigManager
from kdgeo.utils.cli_build import build_command
from kdgeo.utils.cli_search import neighbors_command, query_command
from kdgeo.utils.cli_check import check_command


def add_search_arguments(parser: argparse.ArgumentParser) -> None:
    """Options communes aux commandes de recherche."""
    parser.add_argument("--max_distance", type=float, default=None,
                        help="Distance maximale (par défaut: section search de la configuration)")
    parser.add_argument("--weight", action="append", metavar="DIM=POIDS",
                        help="Poids d'une dimension, répétable (par défaut: configuration)")


def main(argv=None) -> int:
    """
    Point d'entrée principal pour l'interface en ligne de commande.

    Returns:
        int: Code de retour (0 pour succès, autre pour erreur)
    """
    # Pré-lecture de --config pour que les valeurs par défaut viennent du bon fichier
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default=None)
    pre_args, _ = pre_parser.parse_known_args(argv)

    config_manager = ConfigManager(pre_args.config)

    build_config = config_manager.get_section("build_tree")
    default_points_path = config_manager.get_file_path("default_points")
    default_tree_path = config_manager.get_file_path("default_tree")
    default_neighbors_path = config_manager.get_file_path("default_neighbors")

    # Parseur principal
    parser = argparse.ArgumentParser(
        description="KDGeo - Arbre K-dimensionnel pour la recherche du plus proche voisin pondéré",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--config", default=config_manager.config_path,
                        help="Chemin vers le fichier de configuration")
    parser.add_argument("--version", action="version", version="KDGeo v1.0.0")

    subparsers = parser.add_subparsers(dest="command", help="Commandes disponibles")

    # Commande build
    build_parser = subparsers.add_parser("build", help="Construire et sauvegarder un arbre")
    build_parser.add_argument("points_file", nargs="?", default=default_points_path,
                              help="Fichier JSON ou CSV contenant les points")
    build_parser.add_argument("tree_file", nargs="?", default=default_tree_path,
                              help="Fichier de sortie pour l'arbre")
    build_parser.add_argument("--dimensions", nargs="+", default=build_config["dimensions"],
                              help="Dimensions à indexer, dans l'ordre de rotation")
    build_parser.add_argument("--id_field", default=build_config["id_field"],
                              help="Champ identifiant des points")
    build_parser.set_defaults(func=build_command)

    # Commande neighbors
    neighbors_parser = subparsers.add_parser("neighbors", help="Plus proche voisin de chaque point")
    neighbors_parser.add_argument("input_file", nargs="?", default=default_tree_path,
                                  help="Arbre sauvegardé, ou fichier de points JSON/CSV")
    neighbors_parser.add_argument("out_file", nargs="?", default=default_neighbors_path,
                                  help="Fichier de sortie JSON ou CSV")
    add_search_arguments(neighbors_parser)
    neighbors_parser.add_argument("--n_jobs", type=int, default=None,
                                  help="Nombre de processus (joblib)")
    neighbors_parser.add_argument("--progress", action="store_true", default=False,
                                  help="Afficher une barre de progression")
    neighbors_parser.set_defaults(func=neighbors_command)

    # Commande query
    query_parser = subparsers.add_parser("query", help="Plus proche voisin d'une position")
    query_parser.add_argument("tree_file", nargs="?", default=default_tree_path,
                              help="Arbre sauvegardé, ou fichier de points JSON/CSV")
    query_parser.add_argument("--at", action="append", required=True, metavar="DIM=VALEUR",
                              help="Coordonnée de la requête, une par dimension")
    query_parser.add_argument("--self_id", default=None,
                              help="Identifiant à exclure des résultats")
    add_search_arguments(query_parser)
    query_parser.add_argument("--trace", action="store_true", default=False,
                              help="Afficher la trace des décisions de la recherche")
    query_parser.set_defaults(func=query_command)

    # Commande check
    check_parser = subparsers.add_parser("check", help="Vérifier l'arbre contre la recherche exhaustive")
    check_parser.add_argument("tree_file", nargs="?", default=default_tree_path,
                              help="Arbre sauvegardé, ou fichier de points JSON/CSV")
    check_parser.add_argument("--queries", type=int, default=None,
                              help="Nombre de requêtes à évaluer")
    check_parser.add_argument("--seed", type=int, default=42,
                              help="Graine du générateur aléatoire")
    add_search_arguments(check_parser)
    check_parser.set_defaults(func=check_command)

    args = parser.parse_args(argv)

    if hasattr(args, "func"):
        return args.func(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
