#!/usr/bin/env python3

import logging

from congregate.data import DATA_DIR, run_pipeline

SUBDIRS = ["raw", "intermediate", "processed", "reports"]


def init_data_dirs():
    """Create the data directory layout used by the pipeline"""
    for name in SUBDIRS:
        (DATA_DIR / name).mkdir(parents=True, exist_ok=True)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_data_dirs()
    run_pipeline()
