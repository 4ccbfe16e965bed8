"""Replaces the OpenStudio Model with one loaded from an osm file.

# see the URL below for information on how to write OpenStudio measures
# http://nrel.github.io/OpenStudio-user-documentation/reference/measure_writing_guide/
"""
from pathlib import Path

import openstudio

from osmod_std import openstudio_utils


class ReplaceModel(openstudio.measure.ModelMeasure):
    """A ModelMeasure."""

    def name(self):
        """Returns the human readable name."""
        return "Replace Model"

    def description(self):
        """Human readable description."""
        return "Replaces the OpenStudio Model with an alternative one loaded from an osm file."

    def modeler_description(self):
        """Human readable description of modeling approach."""
        return "All objects of the model are removed and replaced with the objects of the alternative model. The weather file and the design days of the original model are kept, those of the alternative model are discarded."

    def arguments(self, model: openstudio.model.Model = None):
        """Prepares user arguments for the measure."""
        args = openstudio.measure.OSArgumentVector()

        alternative_model = openstudio.measure.OSArgument.makeStringArgument('alternative_model', True)
        alternative_model.setDisplayName('Alternative Model')
        alternative_model.setDescription('File name of the osm file that replaces the model')
        alternative_model.setDefaultValue('FullServiceRestaurant.osm')
        args.append(alternative_model)

        osm_directory = openstudio.measure.OSArgument.makeStringArgument('osm_directory', True)
        osm_directory.setDisplayName('OSM Directory')
        osm_directory.setDescription('Directory holding the alternative osm file')
        osm_directory.setDefaultValue('.')
        args.append(osm_directory)

        return args

    def run(
        self,
        model: openstudio.model.Model,
        runner: openstudio.measure.OSRunner,
        user_arguments: openstudio.measure.OSArgumentMap,
    ):
        """Defines what happens when the measure is run."""
        super().run(model, runner, user_arguments)  # Do **NOT** remove this line

        if not (runner.validateUserArguments(self.arguments(model), user_arguments)):
            return False

        alternative_model = runner.getStringArgumentValue('alternative_model', user_arguments)
        osm_directory = runner.getStringArgumentValue('osm_directory', user_arguments)

        runner.registerInitialCondition(f"Model was {model.getBuilding().nameString()}.")

        alternative_model_path = Path(osm_directory.strip()).joinpath(alternative_model.strip())
        if not alternative_model_path.exists():
            runner.registerError(f"File does not exist: {alternative_model_path}")
            return False

        try:
            new_model = openstudio_utils.read_osm_file(str(alternative_model_path))
        except RuntimeError as err:
            runner.registerError(str(err))
            return False

        replaced = openstudio_utils.model_replace_with_alternative(model, new_model)
        if replaced['removed_alternative_weather_file']:
            runner.registerInfo("Removed alternate model's weather file object.")

        runner.registerInfo(f"Model name is now {model.getBuilding().nameString()}.")
        runner.registerFinalCondition(f"Model replaced with alternative {alternative_model_path}. Weather file and design days retained from original.")
        return True

# register the measure to be used by the application
ReplaceModel().registerWithApplication()
