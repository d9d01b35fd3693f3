import numpy as np

from cascadepy.binding_energies import BindingEnergyLibrary
from cascadepy.decay_events import events_to_dataframe
from cascadepy.decay_library import DecayLibrary
from cascadepy.load_data import DecaySchemeData


# electron binding energies of lead in keV
binding_energies = BindingEnergyLibrary.from_records(
    [{"Z": 82, "element": "Pb", "shell": "K", "subshell": 0, "binding": 88.005},
     {"Z": 82, "element": "Pb", "shell": "L", "subshell": 0, "binding": 15.861},
     {"Z": 82, "element": "Pb", "shell": "L", "subshell": 1, "binding": 15.200},
     {"Z": 82, "element": "Pb", "shell": "L", "subshell": 2, "binding": 13.035}])

bi207 = DecaySchemeData.from_records(
    "207Bi",
    levels=[{"name": "207.82.0", "E": 0.0, "hl": "stable", "jpi": "1/2-"},
            {"name": "207.82.1", "E": 569.698, "hl": 130.5e-12, "jpi": "5/2-"},
            {"name": "207.82.2", "E": 1633.356, "hl": 0.806, "jpi": "13/2+"},
            {"name": "207.83.0", "E": 2397.0, "hl": 9.95e8, "jpi": "9/2-"}],
    gammas=[{"from": "207.82.2", "to": "207.82.1", "Igamma": 74.5,
             "CE_K": "0.0929~0.0019", "CE_L": "0.0255~0.0005@0.85:0.1:0.05"},
            {"from": "207.82.1", "to": "207.82.0", "Igamma": 97.75,
             "CE_K": "0.0158~0.0003", "CE_L": "0.00266@0.8:0.15:0.05"}],
    ecapts=[{"from": "207.83.0", "to": "AUTO"}],
    augers=[{"Z": 82, "Iauger": 2.9, "kAlpha1": 35.7, "kAlpha2": 21.4, "kBeta": 12.0}],
    fancyname="Bi-207")


#1) build the level scheme and print it
library = DecayLibrary({"207Bi": bi207}, binding_energies, seed=42, verbosity=True)
scheme = library.get_generator("207Bi")
scheme.display(verbose=True)
print(scheme.flux_table())


#2) generate 10000 decay chains with the internal random generator
events = []
for _ in range(10000):
    scheme.gen_decay_chain(events)
df = events_to_dataframe(events)
print(df.groupby("PID")["KE"].describe())


#3) drive a chain with external random numbers (e.g. from a quasi random sequence)
rnd = np.random.default_rng(1).uniform(size=scheme.get_ndf())
print(events_to_dataframe(scheme.gen_event(rnd)))
