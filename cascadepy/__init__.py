from cascadepy.binding_energies import BindingEnergyLibrary, BindingEnergyTable
from cascadepy.decay_events import DecayEvent, DecayType, events_to_dataframe
from cascadepy.decay_library import DecayLibrary
from cascadepy.level_scheme import LevelScheme, NuclearLevel
from cascadepy.load_data import DecaySchemeData
from cascadepy.probability_selector import ProbabilitySelector
