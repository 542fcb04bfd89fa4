from tgcert.cli.main import main

main()
