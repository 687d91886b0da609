import argparse
import json
import sys
from pathlib import Path

import pandas as pd

from . import __version__
from .design import load_experiment
from .errors import MsExperimentError


def _add_summary_parser(sub):
    p = sub.add_parser("summary", help="Print an experiment summary and its sample-data links")
    p.add_argument("design", type=str, help="Design manifest (.yaml/.yml or .json)")
    return p


def _add_extract_parser(sub):
    p = sub.add_parser("extract", help="Extract samples and write the resulting tables")
    p.add_argument("design", type=str, help="Design manifest (.yaml/.yml or .json)")
    p.add_argument("--samples", type=int, nargs="+", required=True, help="1-based sample indices, in output order")
    p.add_argument("--out-dir", dest="out_dir", type=str, required=True, help="Directory for sample_data.tsv, links.tsv, summary.json")
    return p


def _add_sample_index_parser(sub):
    p = sub.add_parser("sample-index", help="Write the sample index of each spectrum")
    p.add_argument("design", type=str, help="Design manifest (.yaml/.yml or .json)")
    p.add_argument("--mode", choices=["first", "all"], default="first")
    p.add_argument("--out", type=str, required=True, help="Output TSV (spectrum, sample)")
    return p


def _summary_payload(experiment):
    return {
        "ms_experiment_version": __version__,
        "n_samples": len(experiment),
        "sample_columns": [str(c) for c in experiment.sample_data.columns],
        "experiment_files": {k: len(v) for k, v in experiment.experiment_files.items()},
        "n_spectra": 0 if experiment.spectra is None else len(experiment.spectra),
        "qdata_shape": None if experiment.qdata is None else list(experiment.qdata.shape),
        "links": experiment.links().to_frame().to_dict(orient="records"),
    }


def _sample_index_frame(index, mode):
    if mode == "first":
        return pd.DataFrame(
            {
                "spectrum": range(1, len(index) + 1),
                "sample": pd.array(index, dtype="Int64"),
            }
        )
    rows = [(i, s) for i, owners in enumerate(index, start=1) for s in sorted(owners)]
    return pd.DataFrame(rows, columns=["spectrum", "sample"])


def _run(args):
    experiment = load_experiment(Path(args.design))

    if args.cmd == "summary":
        print(repr(experiment))
        links = experiment.links().to_frame()
        if len(links):
            print(links.to_string(index=False))
        return 0

    if args.cmd == "extract":
        sub = experiment.extract_samples(args.samples)
        out_dir = Path(args.out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        sub.sample_data.to_csv(out_dir / "sample_data.tsv", sep="\t", index=False)
        sub.links().to_long().to_csv(out_dir / "links.tsv", sep="\t", index=False)
        payload = _summary_payload(sub)
        payload["samples"] = list(args.samples)
        (out_dir / "summary.json").write_text(json.dumps(payload, indent=2), encoding="utf-8")
        print(f"wrote {out_dir} with {len(sub)} samples and {len(sub.links())} links")
        return 0

    if args.cmd == "sample-index":
        index = experiment.spectra_sample_index(mode=args.mode)
        out = _sample_index_frame(index, args.mode)
        out.to_csv(args.out, sep="\t", index=False)
        print(f"wrote {args.out} with {len(out)} rows (mode={args.mode})")
        return 0

    return 1


def main(argv=None):
    argv = argv or sys.argv[1:]
    ap = argparse.ArgumentParser(prog="ms-experiment", description="Link samples to their data and subset them consistently")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="cmd", required=True)
    _add_summary_parser(sub)
    _add_extract_parser(sub)
    _add_sample_index_parser(sub)
    args = ap.parse_args(argv)

    try:
        return _run(args)
    except MsExperimentError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
