# Swedish tax assumptions (tweakable).
CAPITAL_GAINS_RATE   = 0.206  # aktiekonto: 20.6% on net gain at sale (22/30 of 30%, listed shares)
NOTIONAL_TAX_RATE    = 0.30   # kapitalförsäkring: 30% on the notional return (avkastningsskatt)
NOTIONAL_RATE_MARKUP = 1.0    # percentage points added to statslåneränta
NOTIONAL_RATE_FLOOR  = 1.25   # statutory floor for the notional rate, in percent
