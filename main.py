import argparse
import logging
import os
import sys

import torch

from mfrec.evaluation import evaluate_ranking
from mfrec.feedback import read_interactions
from mfrec.mapping import EntityMapping
from mfrec.model import MF
from mfrec.prediction import write_predictions
from mfrec.sgd import SGDOptimizer


logger = logging.getLogger("mfrec")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Matrix factorization item recommendation (PyTorch)")
    parser.add_argument("--training_file", type=str, required=True,
                        help="CSV/TSV with columns [user,item] or [userId,itemId,rating]")
    parser.add_argument("--test_file", type=str, default="",
                        help="Optional held-out interactions for prec@k / recall@k")
    parser.add_argument("--num_factors", type=int, default=10, help="Latent dimension")
    parser.add_argument("--num_iter", type=int, default=30, help="Number of passes over the training data")
    parser.add_argument("--init_mean", type=float, default=0.0, help="Mean of the factor initialization")
    parser.add_argument("--init_std_dev", type=float, default=0.1, help="Std. dev. of the factor initialization")
    parser.add_argument("--learn_rate", type=float, default=0.05, help="Learning rate for SGD")
    parser.add_argument("--regularization", type=float, default=1e-4, help="L2 regularization strength λ")
    parser.add_argument("--batch_size", type=int, default=256, help="Minibatch size of observed pairs")
    parser.add_argument("--num_negatives", type=int, default=1, help="Sampled negatives per observed pair")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--load_model", type=str, default="",
                        help="Load factors from this file instead of training")
    parser.add_argument("--save_model", type=str, default="", help="Save the trained factors to this file")
    parser.add_argument("--prediction_file", type=str, default="",
                        help="Write per-user recommendations to this file")
    parser.add_argument("--num_predictions", type=int, default=10,
                        help="Items per user in --prediction_file, -1 = no limit")
    parser.add_argument("--eval_k", type=int, default=10, help="Cutoff for prec@k / recall@k")
    parser.add_argument("--log_level", type=str, default="INFO", help="DEBUG|INFO|WARNING|ERROR")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    torch.manual_seed(args.seed)

    # Load feedback and build ID mappings
    user_mapping = EntityMapping()
    item_mapping = EntityMapping()
    train = read_interactions(args.training_file, user_mapping, item_mapping)
    test = read_interactions(args.test_file, user_mapping, item_mapping) if args.test_file else None

    optimizer = SGDOptimizer(
        learn_rate=args.learn_rate,
        regularization=args.regularization,
        batch_size=args.batch_size,
        num_negatives=args.num_negatives,
        seed=args.seed,
    )
    model = MF(
        num_factors=args.num_factors,
        num_iter=args.num_iter,
        init_mean=args.init_mean,
        init_std_dev=args.init_std_dev,
        optimizer=optimizer,
        feedback=train,
        seed=args.seed,
    )

    if args.load_model and os.path.isfile(args.load_model):
        model.load_model(args.load_model)
    else:
        model.fit()
        logger.info("Training fit: %.6f", model.compute_fit())

    # items seen only in the test file have no learned factors
    candidate_items = train.all_items

    if test is not None:
        result = evaluate_ranking(model, test, train, candidate_items, k=args.eval_k)
        logger.info("Evaluation: %s", " ".join(f"{k}={v:.4f}" for k, v in result.items()))

    if args.save_model:
        model.save_model(args.save_model)
        base, _ = os.path.splitext(args.save_model)
        user_mapping.save(f"{base}.users.tsv")
        item_mapping.save(f"{base}.items.tsv")

    if args.prediction_file:
        write_predictions(
            model, train, candidate_items, args.num_predictions,
            user_mapping, item_mapping, args.prediction_file,
        )


if __name__ == "__main__":
    main()
