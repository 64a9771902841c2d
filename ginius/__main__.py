from ginius.cli import main

main(prog_name="ginius")
