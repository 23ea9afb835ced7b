"""
Module pour la construction d'arbres KDGeo en ligne de commande.
"""

import datetime
import time
import argparse

from kdgeo.builder.builder import build_tree_from_file
from kdgeo.utils.config import ConfigManager


def format_time(seconds: float) -> str:
    """Formate le temps en heures, minutes, secondes."""
    return str(datetime.timedelta(seconds=int(seconds)))


def build_command(args: argparse.Namespace) -> int:
    """
    Commande pour construire et sauvegarder un arbre.

    Args:
        args: Arguments de ligne de commande

    Returns:
        int: Code de retour (0 pour succès, autre pour erreur)
    """
    config_manager = ConfigManager(args.config)
    total_start_time = time.time()

    try:
        print(f"🚀 Construction d'un arbre KDGeo...")
        print(f"  - Points: {args.points_file}")
        print(f"  - Sortie: {args.tree_file}")
        print(f"  - Dimensions: {', '.join(args.dimensions)}")
        print(f"  - Champ identifiant: {args.id_field or '(aucun)'}")

        tree = build_tree_from_file(
            points_file=args.points_file,
            output_file=args.tree_file,
            config=config_manager.config,
            dimensions=args.dimensions,
            id_field=args.id_field,
            verbose=True
        )

        total_time = time.time() - total_start_time
        print(f"\n✓ Construction terminée en {format_time(total_time)}: {tree}")

        print("\nPour chercher les plus proches voisins de tous les points :")
        print(f"  python -m kdgeo.cli neighbors {args.tree_file}")

    except Exception as e:
        print(f"\n❌ Erreur: {str(e)}")
        return 1

    return 0
