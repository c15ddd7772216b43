from .batch import FlowRateConfig, RpmConfig

# Settings of the June 2013 / August 2014 basin campaigns.  Runs 5-8 were
# recorded for 20 s only, so just 2 s (1600 samples) are cut at each end.
PRESETS: dict[str, RpmConfig] = {
    "flowrate": FlowRateConfig(
        cut_exceptions={5: (1600, 1600), 6: (1600, 1600), 7: (1600, 1600), 8: (1600, 1600)},
    ),
    "rpm": RpmConfig(),
}
