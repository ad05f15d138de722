#!/usr/bin/env python3
"""
Semantic analysis pipeline runner.

Extracts two documents, embeds their sentences, compares every sentence pair
and plots the result.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from semantic_analysis.core.config import VALID_PROVIDERS, load_settings
from semantic_analysis.core.errors import SemanticAnalysisError
from semantic_analysis.core.pipeline import PipelineOrchestrator

STEPS = ["all", "extract", "embed", "similarity", "plot"]


def build_parser():
    parser = argparse.ArgumentParser(
        description="Map the semantic similarity of two documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Run every step
  %(prog)s --step similarity        # Recompute similarity from existing vector files
  %(prog)s --provider hash          # Offline run with deterministic vectors

Environment variables:
- OPENAI_API_KEY=... (required for the openai provider)
- EMBED_PROVIDER=openai|ollama|sentence_transformer|hash
- EMBED_BATCH_SIZE=10, EMBED_SAVE_INTERVAL=10, EMBED_MAX_ATTEMPTS=3
- DATA_PREPROCESSING_DIR=data/raw (must hold exactly two documents)
        """
    )

    parser.add_argument(
        "--step",
        choices=STEPS,
        default="all",
        help="Pipeline step to run (default: all)"
    )

    parser.add_argument(
        "--provider",
        choices=VALID_PROVIDERS,
        help="Embedding provider (default: EMBED_PROVIDER)"
    )

    parser.add_argument(
        "--batch-size",
        type=int,
        help="Sentences per embedding request (default: 10)"
    )

    parser.add_argument(
        "--save-interval",
        type=int,
        help="Written embeddings between checkpoints (default: 10)"
    )

    parser.add_argument(
        "--max-attempts",
        type=int,
        help="Attempts per sentence after a batch failure (default: 3)"
    )

    parser.add_argument(
        "--plot-width",
        type=float,
        help="Horizontal plotting width (default: 536.0)"
    )

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            embed_provider=args.provider,
            batch_size=args.batch_size,
            save_interval=args.save_interval,
            max_attempts=args.max_attempts,
            plot_width=args.plot_width,
        )
    except ValidationError as e:
        print(f"ERROR: Invalid configuration: {e}")
        return 1

    orchestrator = PipelineOrchestrator(settings)
    print("=== Semantic Analysis Workflow ===")

    try:
        if args.step == "all":
            result = orchestrator.run()
            print(f"✓ Vector files: {', '.join(str(p) for p in result.vector_files)}")
            print(f"✓ Similarity results: {result.similarity_file}")
            print(f"✓ Scatter plot: {result.plot_file}")
            print(f"Overall document similarity: {result.document_similarity:.4f}")
        elif args.step == "extract":
            for path in orchestrator.run_extraction():
                print(f"✓ Sentences saved to {path}")
        elif args.step == "embed":
            for summary in orchestrator.run_embedding():
                print(f"✓ {summary.written}/{summary.total} embeddings saved to {summary.output_path}")
                if summary.failed:
                    print(f"WARNING: {len(summary.failed)} sentences could not be embedded")
        elif args.step == "similarity":
            report = orchestrator.run_similarity()
            print(f"✓ Compared {report.count_a} x {report.count_b} sentences")
            print(f"Overall document similarity: {report.document_similarity:.4f}")
        elif args.step == "plot":
            print(f"✓ Plot saved to {orchestrator.run_visualization()}")

        print("Semantic analysis completed successfully!")
        return 0

    except SemanticAnalysisError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
