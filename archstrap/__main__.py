import archstrap

if __name__ == '__main__':
	archstrap.run_as_a_module()
