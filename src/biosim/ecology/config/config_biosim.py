config_biosim = {
    # --- General settings ---
    "seed": 0,
    "year_begin": 0,
    "year_end": 100,
    "log_every": 10,  # progress line every n years, 0 = silent

    # --- Debug logging ---
    "debug_mode": False,
    "verbose_setup": False,
    "verbose_death": False,
    "verbose_movement": False,
    "verbose_reproduction": False,
    "verbose_engagement": False,

    # --- Reports (0 = never) ---
    "output_stem": None,
    "dump_animal_interval": 0,  # .dyr
    "dump_pop_interval": 0,  # .pop
    "dump_feed_interval": 0,  # .for
}
