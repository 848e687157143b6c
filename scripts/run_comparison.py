#!/usr/bin/env python3
"""
Aktiekonto vs kapitalförsäkring on historical OMXS30 + statslåneränta:

- every start year in the data, holding horizons 5/10/15/20/25 years
- aktiekonto: 20.6% tax on the net gain at sale (losses untaxed)
- kapitalförsäkring: avkastningsskatt every year on the full value

Outputs (with --csv / --plot):
- reports/comparison/results.csv
- reports/comparison/summary.csv
- reports/comparison/figures/*.png
"""

from konto_sim_lab.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
