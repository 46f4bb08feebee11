from programs.form_parser.program import DspyFormOracle, FormOracle, FormParserProgram, make_oracle_from_env

__all__ = ["DspyFormOracle", "FormOracle", "FormParserProgram", "make_oracle_from_env"]
