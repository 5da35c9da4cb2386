"""Route annotation scanning, validation and route map generation."""