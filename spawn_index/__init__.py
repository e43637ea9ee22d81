"""SpawnIndex: Pacific Herring spawn index calculations.

Converts spawn survey observations into a relative index of spawning
biomass (tonnes) for the three survey methods:
  - Surface: egg layers (or historical intensity ratings) × median width
  - Macrocystis: eggs per plant from height, stalks and egg layers
  - Understory: substrate and algae egg layers × proportion cover

plus the spawn-on-kelp (SOK) back-calculation from harvested product.

References:
  - Schweigert 1993 (surface egg density)
  - Haegele & Schweigert 1990 (Macrocystis eggs per plant)
  - Haegele et al. 1979; Schweigert 2005 (understory egg density)
  - Hay & Kronlund 1987 (surface width underestimation)
"""

__version__ = "0.1.0"
