import argparse
import sys

from psychnorm.core.errors import ValidationError
from psychnorm.db.database import Base, engine, transactional_session
from psychnorm.models import TestType
from psychnorm.services.norm_import import REQUIRED_COLUMNS, import_table

"""
CLI usage (optional):
python -m scripts.import_norms <test_type> "<table name>" <path_to_csv> [--version 2.0] [--replace]
CSV columns: min_value,max_value,percentile,classification[,category,iq]
"""


def main(argv=None):
    parser = argparse.ArgumentParser(prog="import_norms")
    parser.add_argument("test_type")
    parser.add_argument("name")
    parser.add_argument("csv_path")
    parser.add_argument("--version", default="1.0")
    parser.add_argument("--criterion")
    parser.add_argument("--reference-curve")
    parser.add_argument("--evaluation-subtype")
    parser.add_argument("--replace", action="store_true")
    args = parser.parse_args(argv)

    try:
        test_type = TestType.parse(args.test_type)
    except ValueError:
        print(f"Unknown test type: {args.test_type}. Available: {', '.join(t.value for t in TestType)}")
        sys.exit(1)

    Base.metadata.create_all(bind=engine)
    with open(args.csv_path, "r", encoding="utf-8") as f:
        content = f.read()
    try:
        with transactional_session() as db:
            table = import_table(
                db,
                test_type,
                args.name,
                content,
                version=args.version,
                criterion=args.criterion,
                reference_curve=args.reference_curve,
                evaluation_subtype=args.evaluation_subtype,
                replace=args.replace,
            )
            table_id, row_count = table.id, len(table.rows)
    except ValidationError as e:
        print(f"Import failed: {e.message}")
        print(f"CSV header must include: {','.join(REQUIRED_COLUMNS)}")
        sys.exit(2)
    print(f"Imported {row_count} rows into table #{table_id} ({test_type.value} {args.name} v{args.version})")


if __name__ == "__main__":
    main()
