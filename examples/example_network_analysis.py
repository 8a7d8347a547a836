#!/usr/bin/env python3
"""
Basic Site Network Example

This example walks through the archNet workflow on a small ceramic assemblage
from two phases of a settlement cluster. It shows how to:

1. Load an assemblage table with a period column
2. Build co-presence networks with both builders
3. Calculate centrality and graph-level metrics
4. Compare the networks of two periods
5. Export results for Gephi and further analysis

The counts are invented but shaped like a typical ware-type table: one row per
site and phase, one column per ceramic type.
"""

from pathlib import Path

import polars as pl

from archNet import setup_logging
from archNet.assemblage import load_assemblage_table, build_node_list, select_type_range
from archNet.network import (
    build_copresence_matrix,
    build_edgelist,
    build_site_network,
    extract_centrality,
    identify_central_nodes,
    calculate_graph_metrics,
    export_graph,
    write_edgelist,
    write_copresence_matrix
)
from archNet.periods import (
    build_period_networks,
    compare_period_metrics,
    extract_period_centrality,
    compare_period_centrality,
    edge_overlap
)


def sample_assemblage() -> pl.DataFrame:
    return pl.DataFrame({
        "site": ["LA 1", "LA 2", "LA 3", "LA 4", "LA 5",
                 "LA 1", "LA 2", "LA 3", "LA 4", "LA 6"],
        "period": ["AD 1000"] * 5 + ["AD 1100"] * 5,
        "notes": ["great house", "", "", "midden only", "",
                  "great house", "", "", "midden only", "new"],
        "Red_Mesa_BW": [40, 22, 5, 0, 12, 8, 3, 0, 0, 1],
        "Gallup_BW": [10, 18, 2, 6, 0, 30, 25, 4, 2, 9],
        "Chaco_BW": [0, 1, 0, 0, 0, 12, 6, 0, 0, 3],
        "Puerco_BW": [2, 0, 9, 4, 0, 5, 0, 7, 6, 0],
        "Corrugated": [55, 60, 30, 12, 20, 70, 52, 33, 10, 15],
    })


def sample_sites() -> pl.DataFrame:
    return pl.DataFrame({
        "site": ["LA 1", "LA 2", "LA 3", "LA 4", "LA 5", "LA 6"],
        "label": ["Pueblo Bonito", "Chetro Ketl", "Pueblo Alto",
                  "Kin Kletso", "Casa Rinconada", "Peñasco Blanco"],
        "x": [-107.962, -107.955, -107.956, -107.966, -107.958, -108.006],
        "y": [36.061, 36.063, 36.072, 36.063, 36.057, 36.041],
    })


def main():
    """Main function demonstrating the site network workflow."""
    setup_logging(level="WARNING")

    print("=" * 60)
    print("Site Co-presence Network Example")
    print("=" * 60)

    # Step 1: Load the assemblage table
    print("\n1. Loading Assemblage Table")
    print("-" * 40)

    raw = sample_assemblage()
    type_cols = select_type_range(raw, "Red_Mesa_BW", "Corrugated")
    table = load_assemblage_table(raw, type_cols=type_cols, period_col="period")
    nodes = build_node_list(sample_sites(), name_col="label",
                            longitude_col="x", latitude_col="y")

    print(f"Loaded {table.height} site-period rows with {len(type_cols)} types")
    print(table.head())

    # Step 2: Build the networks of the later period
    print("\n2. Building Co-presence Networks (AD 1100)")
    print("-" * 40)

    late = table.filter(pl.col("period") == "AD 1100").drop("period")

    edges = build_edgelist(late, presence_threshold=2)
    matrix = build_copresence_matrix(late, threshold=0.1)
    print(f"Edge list (count > 2): {edges.height} links")
    print(edges)
    print("\nCo-presence matrix (share >= 10%):")
    print(matrix)

    graph, id_mapper = build_site_network(late, threshold=2, nodes=nodes)
    print(f"\nBuilt graph with {graph.numberOfNodes()} sites and {graph.numberOfEdges()} links")

    # Step 3: Centrality and graph metrics
    print("\n3. Calculating Centrality and Graph Metrics")
    print("-" * 40)

    centrality_df = extract_centrality(
        graph, id_mapper, metrics=["degree", "strength", "betweenness", "closeness"]
    )
    print(centrality_df)

    print("\nMost central sites (by strength):")
    for site in identify_central_nodes(centrality_df, "strength_centrality", top_k=3):
        print(f"  {site}")

    metrics = calculate_graph_metrics(graph, id_mapper)
    print(f"\nDensity: {metrics['density']:.3f}")
    print(f"Transitivity: {metrics['transitivity']:.3f}")
    print(f"Mean distance: {metrics['mean_distance']:.3f}")
    print(f"Components: {metrics['num_components']} ({metrics['num_isolates']} isolated sites)")

    # Step 4: Compare periods
    print("\n4. Comparing Periods")
    print("-" * 40)

    period_networks = build_period_networks(table, "period", threshold=2, nodes=nodes)

    print(compare_period_metrics(period_networks).select(
        "period", "num_edges", "density", "transitivity", "num_components"
    ))

    period_centrality = extract_period_centrality(period_networks, metrics=["degree", "strength"])
    agreement = compare_period_centrality(period_centrality, "AD 1000", "AD 1100", metric="degree")
    print(f"\nDegree rank agreement: spearman {agreement['spearman']:.3f} "
          f"over {agreement['n_sites']} sites")

    overlap = edge_overlap(period_networks[0], period_networks[1])
    print(f"Links kept between periods: {overlap['shared']} "
          f"(jaccard {overlap['jaccard']:.2f})")

    # Step 5: Export results
    print("\n5. Exporting Results")
    print("-" * 40)

    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    gexf_path = export_graph(
        graph, id_mapper, output_dir / "chaco_ad1100.gexf",
        format="gexf", metadata=nodes, include_metrics=["degree", "strength"],
        overwrite=True
    )
    print(f"Exported graph to: {gexf_path}")

    print(f"Exported edge list to: {write_edgelist(edges, output_dir / 'edges_ad1100.csv')}")
    print(f"Exported matrix to: {write_copresence_matrix(matrix, output_dir / 'matrix_ad1100.csv')}")

    period_centrality.write_csv(output_dir / "period_centrality.csv")
    print(f"Exported period centrality to: {output_dir / 'period_centrality.csv'}")

    print("\n" + "=" * 60)
    print("Site network analysis complete!")
    print("Check the 'output' directory for exported files.")
    print("=" * 60)


if __name__ == "__main__":
    main()
